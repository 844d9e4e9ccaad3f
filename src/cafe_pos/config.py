from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str
    SQL_ECHO: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Формат номера заказа: ORD-<6 цифр>-<3 символа>
    ORDER_NUMBER_PREFIX: str = "ORD"
    ORDER_NUMBER_MAX_ATTEMPTS: int = 5

    ORDERS_PAGE_LIMIT: int = 100

    class Config:
        env_file = ".env"

settings = Settings()
