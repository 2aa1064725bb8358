# storepay/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# ---------------------------------------------
# LOAD ENVIRONMENT VARIABLES
# ---------------------------------------------
load_dotenv()

# ---------------------------------------------
# IMPORT ROUTERS
# ---------------------------------------------
from storepay.config import settings
from storepay.logging_config import get_logger
from storepay.middleware import request_id_middleware
from storepay.routers import health, payments, returns, stores

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "service_started",
        environment=settings.ENVIRONMENT,
        gateway_sandbox=settings.GATEWAY_SANDBOX,
        functions_base_url=settings.FUNCTIONS_BASE_URL,
    )
    yield


# ---------------------------------------------
# APP INIT
# ---------------------------------------------
app = FastAPI(
    lifespan=lifespan,
    title="storepay Order Service",
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
)

# ---------------------------------------------
# MIDDLEWARE
# ---------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(request_id_middleware)

# ---------------------------------------------
# ROUTERS
# ---------------------------------------------

# Health
app.include_router(health.router)

# Order service functions (create_order / verify_payment, PhonePe callback)
app.include_router(payments.router)

# Return relays for gateways that POST their result
app.include_router(returns.router)

# Checkout method listing
app.include_router(stores.router)


# ---------------------------------------------
# ROOT ENDPOINT
# ---------------------------------------------
@app.get("/")
def root():
    return {"message": "storepay order service is running"}
