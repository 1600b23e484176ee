# FastAPI Application Entry Point
from fastapi import FastAPI

# Configuration and Observability
from case_review_service.app.config import settings
from case_review_service.app.observability import setup_opentelemetry, logger

# Initialize OpenTelemetry
setup_opentelemetry(service_name=settings.SERVICE_NAME_API)

# Import instrumentors after OTel SDK is initialized
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.pymongo import PymongoInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from case_review_service.app.dependencies.http_client import create_http_client
from case_review_service.infrastructure.cloudinary_client import CloudinaryClient
from case_review_service.infrastructure.database import store_config_store
from case_review_service.infrastructure.database.connection import create_mongo_connection
from case_review_service.infrastructure.gmail_client import GmailClient
from case_review_service.infrastructure.kafka.producer import create_kafka_producer, shutdown_kafka_producer

# API Routers
from case_review_service.app.api.v1.endpoints import health as health_router
from case_review_service.app.api.v1.endpoints import session as session_router
from case_review_service.app.api.v1.endpoints import cases as cases_router
from case_review_service.app.api.v1.endpoints import mail as mail_router
from case_review_service.app.api.v1.endpoints import stores as stores_router

ADMIN_API_PREFIX = "/api/admin"

app = FastAPI(
    title="Case Review Service",
    description="Admin back-office for reviewing customer claim cases.",
    version="1.0.0"
)


@app.on_event("startup")
async def startup_event():
    logger.info("FastAPI application startup...")
    app.state.http_client = create_http_client()
    HTTPXClientInstrumentor().instrument()
    app.state.gmail_client = GmailClient(app.state.http_client)
    app.state.cloudinary_client = CloudinaryClient(app.state.http_client)
    logger.info(f"HTTPX AsyncClient initialized with timeout {settings.DEFAULT_HTTP_TIMEOUT} and instrumented.")

    app.state.kafka_producer = None
    try:
        PymongoInstrumentor().instrument()
        app.state.mongo = create_mongo_connection()
        db = await app.state.mongo.connect()
        await store_config_store.ensure_indexes(db)
        logger.info("MongoDB connection established and store indexes ensured.")

        app.state.kafka_producer = create_kafka_producer()
        if app.state.kafka_producer is not None:
            await app.state.kafka_producer.start_polling()
            logger.info("Kafka Producer polling started.")
    except Exception as e:
        logger.error(f"Failed during startup: {e}", exc_info=True)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("FastAPI application shutdown...")

    if getattr(app.state, "http_client", None):
        await app.state.http_client.aclose()
        logger.info("HTTPX AsyncClient closed.")

    await shutdown_kafka_producer(getattr(app.state, "kafka_producer", None))

    if getattr(app.state, "mongo", None):
        app.state.mongo.close()


FastAPIInstrumentor.instrument_app(app)
logger.info("FastAPI instrumentation complete.")

app.include_router(health_router.router)
app.include_router(session_router.router, prefix=ADMIN_API_PREFIX)
app.include_router(cases_router.router, prefix=ADMIN_API_PREFIX)
app.include_router(mail_router.router, prefix=ADMIN_API_PREFIX)
app.include_router(stores_router.router, prefix=ADMIN_API_PREFIX)

logger.info("API routers included. Application setup complete.")

# To run: uvicorn case_review_service.app.main:app --reload --port 8000
