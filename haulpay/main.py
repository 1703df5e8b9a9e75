"""HaulPay — FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from haulpay.adapters.persistence.database import engine
from haulpay.config import settings
from haulpay.domain.errors import BusinessRuleError, EntityNotFoundError
from haulpay.infrastructure.api.routes_auto_assignment import router as auto_assignment_router
from haulpay.infrastructure.api.routes_dispatch import router as dispatch_router
from haulpay.infrastructure.api.routes_health import router as health_router
from haulpay.infrastructure.api.routes_pay_plans import router as pay_plans_router
from haulpay.infrastructure.api.routes_payables import router as payables_router
from haulpay.infrastructure.api.routes_rate_profiles import router as rate_profiles_router
from haulpay.infrastructure.api.routes_settlements import router as settlements_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    try:
        async with engine.begin():
            pass
        logger.info("Database connection established")
    except Exception as e:
        logger.warning("Database not available on startup: %s", e)
    yield
    await engine.dispose()


async def _not_found(request: Request, exc: EntityNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _rule_violation(request: Request, exc: BusinessRuleError):
    return JSONResponse(
        status_code=409, content={"detail": str(exc), "type": type(exc).__name__}
    )


def create_app() -> FastAPI:
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="HaulPay",
        description="Driver and carrier pay engine with dispatch-leg assignment",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(EntityNotFoundError, _not_found)
    app.add_exception_handler(BusinessRuleError, _rule_violation)

    # Register routers
    app.include_router(health_router, prefix="/api")
    app.include_router(dispatch_router, prefix="/api")
    app.include_router(payables_router, prefix="/api")
    app.include_router(settlements_router, prefix="/api")
    app.include_router(rate_profiles_router, prefix="/api")
    app.include_router(pay_plans_router, prefix="/api")
    app.include_router(auto_assignment_router, prefix="/api")

    return app


app = create_app()
