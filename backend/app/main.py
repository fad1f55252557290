# File: backend/app/main.py
# (Lifespan: scheduler + flush sinkronisasi yang tertunda saat shutdown)
from fastapi import FastAPI
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
import sys
from app.api.v1.api import api_router
from app.api.v1.endpoints.health import metrics_middleware
from app.core.config import settings
import logging.config
from app.core.dependencies import sync_coordinator
from app.core.scheduler import scheduler, setup_scheduler_jobs


# --- OpenTelemetry Setup ---
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource, SERVICE_NAME, SERVICE_VERSION
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

APP_VERSION = "0.1.0"


def setup_opentelemetry(app: FastAPI):
    """Configure OpenTelemetry tracing."""
    if not settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        logger.warning("OpenTelemetry endpoint not configured. Skipping tracing setup.")
        return

    resource = Resource(attributes={
        SERVICE_NAME: "keythoughts-api",
        SERVICE_VERSION: APP_VERSION,
    })

    tracer_provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(tracer_provider)

    otlp_exporter = OTLPSpanExporter(
        endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT,
        insecure=True # Set to False for production with TLS
    )

    span_processor = BatchSpanProcessor(otlp_exporter)
    tracer_provider.add_span_processor(span_processor)

    # Instrument FastAPI and httpx
    FastAPIInstrumentor.instrument_app(app, tracer_provider=tracer_provider)
    HTTPXClientInstrumentor().instrument()

    logger.info("OpenTelemetry configured successfully.")

# --- KONFIGURASI LOGGING ---
LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": sys.stdout,
        },
    },
    "loggers": {
        "": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "app": {
            "handlers": ["console"],
            "level": "DEBUG",
            "propagate": False,
        },
        "httpx": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "httpcore": {
             "handlers": ["console"],
             "level": "INFO",
             "propagate": False,
         },
        "hpack": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "apscheduler": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
         "uvicorn": {
             "handlers": ["console"],
             "level": "INFO",
             "propagate": False,
         },
         "uvicorn.error": {
             "level": "INFO",
              "propagate": False,
         },
         "uvicorn.access": {
             "handlers": ["console"],
             "level": "INFO",
             "propagate": False,
         },
    },
}

logging.config.dictConfig(LOGGING_CONFIG)
logger = logging.getLogger("app")

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Mengelola siklus hidup scheduler dan sinkronisasi tree.
    """
    logger.info("Aplikasi FastAPI memulai startup...")

    # --- STARTUP ---
    try:
        setup_scheduler_jobs()
        scheduler.start()
        logger.info("APScheduler (background jobs) berhasil dimulai.")

    except Exception as e:
        logger.critical(f"FATAL: Gagal saat startup: {e}", exc_info=True)
        # Hentikan aplikasi jika startup gagal
        raise e

    yield # Aplikasi berjalan

    # --- SHUTDOWN ---
    logger.info("Aplikasi FastAPI memulai shutdown...")

    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("APScheduler dimatikan.")

    # Edit yang masih menunggu debounce disimpan sebelum proses berhenti
    await sync_coordinator.shutdown()
    logger.info("Aplikasi FastAPI shutdown selesai.")


app = FastAPI(
    title="KeyThoughts API",
    version=APP_VERSION,
    description="Backend for hierarchical key-thoughts notes (projects, pages, block trees).",
    lifespan=lifespan
)

# Setup OpenTelemetry BEFORE middleware
setup_opentelemetry(app)

# Add metrics middleware
app.middleware("http")(metrics_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Untuk dev: izinkan semua origin (ganti di produksi)
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")
