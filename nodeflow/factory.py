"""Application factory for creating FastAPI instances."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.endpoints import init_dependencies, router
from .config import AppConfig, get_config, validate_config
from .core.flow_engine import FlowEngine
from .core.logging import setup_logging
from .core.middleware import ErrorHandlingMiddleware, RequestLoggingMiddleware
from .core.node_registry import NodeRegistry, create_default_registry
from .core.state_manager import StateManager
from .storage.database import configure_database, create_tables


class ApplicationState:
    """Container for application state and components."""

    def __init__(self):
        self.config: Optional[AppConfig] = None
        self.node_registry: Optional[NodeRegistry] = None
        self.state_manager: Optional[StateManager] = None
        self.flow_engine: Optional[FlowEngine] = None


# Global application state
app_state = ApplicationState()


def initialize_core_components(config: AppConfig, registry: Optional[NodeRegistry] = None) -> tuple:
    """Build the registry, state manager and engine from the configuration."""
    registry = registry if registry is not None else create_default_registry()
    state_manager = StateManager()
    flow_engine = FlowEngine(
        registry=registry,
        state_manager=state_manager,
        trigger_category=config.trigger_category,
        message_key=config.message_key,
        correlation_keys=config.correlation_keys,
        interpolate_inputs=config.interpolate_inputs,
    )
    return registry, state_manager, flow_engine


def create_lifespan_handler(config: AppConfig, registry: Optional[NodeRegistry] = None):
    """Create the application lifespan handler."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger = setup_logging(
            level=config.log_level.value,
            log_file=config.log_file,
            log_format=config.log_format,
            structured=config.structured_logging,
            max_size=config.log_max_size,
            backup_count=config.log_backup_count
        )
        logger.info(f"Starting {config.app_name} v{config.app_version}")

        try:
            configure_database(config.database_url, echo=config.database_echo)
            create_tables()
            logger.info("Database tables created")

            node_registry, state_manager, flow_engine = initialize_core_components(config, registry)
        except Exception as e:
            logger.error(f"Application startup failed: {e}")
            raise

        app_state.config = config
        app_state.node_registry = node_registry
        app_state.state_manager = state_manager
        app_state.flow_engine = flow_engine

        init_dependencies(
            flow_engine=flow_engine,
            node_registry=node_registry,
            state_manager=state_manager,
            default_handle=config.default_handle,
        )
        logger.info("Application startup completed successfully")

        yield

        logger.info(f"Shutting down {config.app_name}")
        await flow_engine.shutdown()

    return lifespan


def create_app(config: Optional[AppConfig] = None, registry: Optional[NodeRegistry] = None) -> FastAPI:
    """Create and configure a FastAPI application instance.

    ``registry`` replaces the built-in node set, mainly for tests.
    """
    if config is None:
        config = get_config()

    validate_config(config)

    app = FastAPI(
        title=config.app_name,
        description="Executes node graphs against inbound events",
        version=config.app_version,
        debug=config.debug,
        lifespan=create_lifespan_handler(config, registry)
    )

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=config.cors_methods,
            allow_headers=["*"],
        )

    app.add_middleware(ErrorHandlingMiddleware)
    if config.enable_request_logging:
        app.add_middleware(RequestLoggingMiddleware)

    app.include_router(router)
    add_health_endpoints(app, config)

    return app


def add_health_endpoints(app: FastAPI, config: AppConfig) -> None:
    """Add health check endpoints to the application."""

    @app.get("/")
    async def root():
        return {"message": f"{config.app_name} is running", "version": config.app_version}

    @app.get("/health")
    async def health_check():
        engine = app_state.flow_engine
        return {
            "status": "healthy",
            "service": config.app_name.lower().replace(" ", "-"),
            "version": config.app_version,
            "active_executions": len(engine.get_active_executions()) if engine else 0,
        }
