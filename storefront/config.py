import os


def _env_bool(name, default=False):
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # "sql" (relational store) or "mock" (JSON files)
    STORE_BACKEND = os.getenv("STORE_BACKEND", "sql")
    MOCK_DATA_DIR = os.getenv("MOCK_DATA_DIR")

    # session cookie carrying the JWT
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-me")
    JWT_TOKEN_LOCATION = ["cookies", "headers"]
    JWT_ACCESS_COOKIE_NAME = "session_token"
    JWT_COOKIE_SECURE = _env_bool("JWT_COOKIE_SECURE", False)
    JWT_COOKIE_CSRF_PROTECT = _env_bool("JWT_COOKIE_CSRF_PROTECT", True)
    JWT_COOKIE_SAMESITE = "Lax"
    JWT_ACCESS_TOKEN_EXPIRES = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRES", 60 * 60 * 24))

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # checkout money rules
    SHIPPING_FEE = int(os.getenv("SHIPPING_FEE", 30000))
    CHECKOUT_DISCOUNT = int(os.getenv("CHECKOUT_DISCOUNT", 20000))

    # when set, guests cannot keep a server-side cart
    CART_REQUIRE_LOGIN = _env_bool("CART_REQUIRE_LOGIN", False)

    @staticmethod
    def init_app(app):
        os.makedirs(app.instance_path, exist_ok=True)
        if not app.config.get("SQLALCHEMY_DATABASE_URI"):
            app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv(
                "DATABASE_URL", f"sqlite:///{os.path.join(app.instance_path, 'app.db')}"
            )
        if not app.config.get("MOCK_DATA_DIR"):
            app.config["MOCK_DATA_DIR"] = os.path.join(app.instance_path, "mock_data")


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    JWT_SECRET_KEY = "test-jwt-secret-with-enough-length-32b"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_COOKIE_CSRF_PROTECT = False
    LOG_LEVEL = "DEBUG"
