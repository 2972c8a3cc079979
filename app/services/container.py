import logging

from app.core.config import settings
from app.core.exceptions import ConfigurationError
from app.repositories.data_store import DataStore
from app.services.access_control import AccessControlResolver
from app.services.audit_service import AuditLogger
from app.services.auth_service import AuthService
from app.services.directory_service import DirectoryService
from app.services.record_service import RecordService


logger = logging.getLogger(__name__)

# Built at import so a malformed catalog or role table stops the app from starting.
try:
    resolver = AccessControlResolver()
except ConfigurationError:
    logger.critical("Access control configuration is invalid; refusing to start")
    raise

store = DataStore()
audit_logger = AuditLogger()

auth_service = AuthService(store=store, audit_logger=audit_logger, seed=settings.seed_demo_data)
directory_service = DirectoryService(
    store=store,
    audit_logger=audit_logger,
    seed=settings.seed_demo_data,
)
record_service = RecordService(
    store=store,
    resolver=resolver,
    audit_logger=audit_logger,
    seed=settings.seed_demo_data,
)
