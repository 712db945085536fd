from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):

    #App
    app_name: str = "Shop Backend"
    app_version: str = "0.4.1"
    app_description: str = "Catalog, orders and checkout for the shop"
    log_level: str = "warning"
    debug: bool = False                          # Logs generated queries and echoes SQL

    #Database
    database_url: str = "postgresql://postgres@localhost:5432/shop"
    db_schema: str = "shop"

    #Queries
    list_limit: int = 25                         # Default limit for article lists, 0 disables it
    search_language: str = "romanian"            # Text search configuration

    #Clerk
    clerk_secret_key: str = ""
    clerk_jwks_url: str = "https://api.clerk.com/v1/jwks"
    jwt_audiences: list[str] = []
    method_groups: dict[str, list[str]] = {
        "save_article": ["primary"],
        "delete_article": ["primary"],
        "list_orders": ["primary"],
        "save_order": ["primary"],
        "save_categories": ["primary"],
        "save_base_price": ["primary"],
        "delete_base_price": ["primary"],
    }

    #Mail
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    mail_from: str = "shop@localhost"
    mail_to: list[str] = []
    mail_template_dir: str = "templates"
    shop_name: str = "Shop"
    currency: str = "RON"

    #Payment
    payment_confirm_url: str = ""
    payment_return_url: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

@lru_cache

def get_settings() -> Settings:
    return Settings()
