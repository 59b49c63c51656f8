from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Etsy app keystring, sent as client_id and as the x-api-key header
    etsy_client_id: str = ""

    # Must match a Callback URL registered in the Etsy developer console exactly,
    # trailing slash included
    redirect_uri: str = "http://localhost:8000/"
    etsy_scopes: list[str] = ["listings_w", "listings_r", "shops_r", "email_r"]

    etsy_api_base_url: str = "https://api.etsy.com/v3"
    etsy_auth_url: str = "https://www.etsy.com/oauth/connect"
    etsy_token_url: str = "https://api.etsy.com/v3/public/oauth/token"
    http_timeout: float = 30.0

    # Durable slot for the access token
    token_store_path: str = "data/token.json"

    # Draft listing placeholders for a digital download
    listing_quantity: int = 999
    listing_price: float = 3.00
    listing_taxonomy_id: int = 2078  # Digital Prints
    listing_shop_section_id: int | None = 41824610
    listing_when_made: str = "2020_2029"

    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"


settings = Settings()
