from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # SpareBank 1 API credentials
    bank_client_id: str
    bank_client_secret: str
    bank_account_key: str
    bank_auth_url: str = "https://api-auth.sparebank1.no/oauth/token"
    bank_api_url: str = "https://api.sparebank1.no/personal/banking"

    # YNAB settings
    ynab_token: str
    ynab_budget_id: str
    ynab_account_id: str
    ynab_credit_card_account_id: str
    ynab_api_url: str = "https://api.ynab.com/v1"

    # Persistence of the refresh token and last sync date
    database_url: str = "sqlite:///./banksync.db"
    secret_key: str
    token_store_backend: str = "database"  # database, file or memory
    token_store_path: str = "./state"

    # Basic auth for the CSV upload endpoint
    basic_auth_user: str
    basic_auth_password: str

    # Sync behaviour
    sync_from: str = "latest_ledger_transaction"  # or last_sync_date
    recent_window_days: int = 5
    timezone: str = "Europe/Oslo"
    http_timeout: float = 30.0

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings():
    return Settings()
