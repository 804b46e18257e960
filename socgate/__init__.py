import atexit
import logging
import os

from flask import Flask

from socgate.db.database import TenantDatabaseManager
from socgate.db.settings import settings
from socgate.error_handling import register_error_handlers
from socgate.routes.health_routes import health_bp
from socgate.routes.post_routes import post_bp
from socgate.routes.provider_routes import provider_bp
from socgate.security.credential_encryption import CredentialEncryption
from socgate.services.job_scheduler import JobScheduler
from socgate.services.post_service import PostService
from socgate.services.provider_service import ProviderService
from socgate.services.providers import ProviderFactory, ProviderHTTPClient, ProvidersConfig

logger = logging.getLogger(__name__)


def create_app(test_config=None):
    # create and configure the app
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_mapping(
        SECRET_KEY=settings.secret_key or "dev",
        DATA_DIR=settings.data_dir,
        SCHEDULER_ENABLED=True,
        SCHEDULER_INTERVAL_SECONDS=settings.scheduler_interval_seconds,
        HTTP_TIMEOUT_SECONDS=settings.http_timeout_seconds,
        PROVIDERS_CONFIG_FILE=settings.providers_config_file,
    )

    if test_config is None:
        # load the instance config, if it exists, when not testing
        app.config.from_pyfile("config.py", silent=True)
    else:
        # load the test config if passed in
        app.config.from_mapping(test_config)

    _initialize_services(app)

    # register error handlers
    register_error_handlers(app)

    app.register_blueprint(health_bp)
    app.register_blueprint(post_bp)
    app.register_blueprint(provider_bp)

    if app.config["SCHEDULER_ENABLED"]:
        _start_scheduler(app)

    return app


def _initialize_services(app):
    """Build the tenant database registry, the services and the scheduler."""
    db_manager = TenantDatabaseManager(app.config["DATA_DIR"])

    factory = ProviderFactory(
        http_client=ProviderHTTPClient(timeout=int(app.config["HTTP_TIMEOUT_SECONDS"]))
    )
    provider_service = ProviderService(
        db_manager,
        factory=factory,
        providers_config=ProvidersConfig.load(app.config["PROVIDERS_CONFIG_FILE"]),
        encryption=CredentialEncryption(app.config["SECRET_KEY"]),
    )
    post_service = PostService(db_manager, provider_service)

    job_scheduler = JobScheduler(db_manager, provider_service)
    job_scheduler.init_app(app)

    app.extensions["socgate"] = {
        "db_manager": db_manager,
        "provider_service": provider_service,
        "post_service": post_service,
        "job_scheduler": job_scheduler,
    }

    logger.info(
        f"Services initialized (data dir {os.path.abspath(app.config['DATA_DIR'])})"
    )


def _start_scheduler(app):
    """Open existing tenant databases and start the polling scheduler."""
    services = app.extensions["socgate"]
    db_manager = services["db_manager"]
    job_scheduler = services["job_scheduler"]

    try:
        db_manager.open_existing()
        job_scheduler.start()
    except Exception as e:
        logger.error(f"Failed to start job scheduler: {e}")
        raise

    def _shutdown():
        job_scheduler.stop()
        db_manager.close_all()

    atexit.register(_shutdown)
