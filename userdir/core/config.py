from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application settings
    APP_NAME: str = "userdir"
    VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_PATH: str = "./userdir.db"
    DATABASE_TIMEOUT: float = 5.0  # seconds to wait on a locked database

    # Password hashing
    BCRYPT_ROUNDS: int = 10

    # Search
    HYDRATION_BATCH_SIZE: int = 500  # user ids per attribute lookup

    class Config:
        env_prefix = "USERDIR_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


settings = Settings()
