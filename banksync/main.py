import logging
from fastapi import FastAPI

from banksync.config import get_settings
from banksync.database import Base, engine
from banksync.app.auth import BasicAuthError, basic_auth_error_handler
from banksync.app.routes import sync, upload_csv

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)

# Fails fast on missing configuration
settings = get_settings()

app = FastAPI(
    title="Bank Sync API",
    description="Syncs SpareBank 1 transactions into YNAB",
    version="1.0.0"
)

app.include_router(sync.router, prefix="/api")
app.include_router(upload_csv.router, prefix="/api")

app.add_exception_handler(BasicAuthError, basic_auth_error_handler)


@app.on_event("startup")
def create_tables():
    Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "healthy"}
