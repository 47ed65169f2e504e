"""
Configuration Management
Environment-based configuration for the gateway secret, RabbitMQ and application settings
"""

import os
from typing import List, Optional
from urllib.parse import quote

import structlog
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)


class GatewayConfig(BaseSettings):
    """Shared secret checked on every message request"""

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    api_key: str = ""

    def has_api_key(self) -> bool:
        return bool(self.api_key)


class BrokerConfig(BaseSettings):
    """RabbitMQ Configuration"""

    model_config = SettingsConfigDict(env_prefix="RABBITMQ_", case_sensitive=False)

    user: str = "guest"
    password: str = "guest"
    host: str = "rabbitmq"
    port: int = 5672
    vhost: str = "/"
    exchange: str = "communication_exchange"
    connect_timeout: float = 10.0

    @field_validator('port')
    @classmethod
    def validate_port(cls, v):
        if not 1 <= v <= 65535:
            raise ValueError('RabbitMQ port must be between 1 and 65535')
        return v

    @field_validator('connect_timeout')
    @classmethod
    def validate_connect_timeout(cls, v):
        if v < 1:
            raise ValueError('RabbitMQ connect timeout must be at least 1 second')
        return v

    def get_broker_url(self) -> str:
        """Build AMQP URL from individual settings"""
        url = f"amqp://{quote(self.user, safe='')}:{quote(self.password, safe='')}@{self.host}:{self.port}"
        if self.vhost and self.vhost != "/":
            url = f"{url}/{quote(self.vhost, safe='')}"
        return url

    def log_config(self):
        """Log configuration (without sensitive data)"""
        logger.info(
            "Broker configuration",
            host=self.host,
            port=self.port,
            vhost=self.vhost,
            user=self.user,
            exchange=self.exchange,
        )


class AppConfig(BaseSettings):
    """Application Configuration"""

    model_config = SettingsConfigDict(env_prefix="APP_", case_sensitive=False)

    service_name: str = "communication-service"
    service_version: str = "1.0.0"
    service_display_name: str = "The communication microservice"
    api_prefix: str = "/v1"
    port: int = 8080


def get_cors_origins() -> List[str]:
    origins = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if origins:
        return [o.strip() for o in origins.split(",") if o.strip()]
    return ["*"]


def get_cors_headers() -> List[str]:
    headers = [h.strip() for h in os.getenv("CORS_ALLOWED_HEADERS", "Content-Type").split(",") if h.strip()]
    if "x-api-key" not in (h.lower() for h in headers):
        headers.append("x-api-key")
    return headers


def get_cors_credentials() -> bool:
    return os.getenv("CORS_ALLOW_CREDENTIALS", "false").lower() == "true"


def get_cors_methods() -> List[str]:
    return [m.strip() for m in os.getenv("CORS_ALLOWED_METHODS", "GET,POST,OPTIONS").split(",") if m.strip()]


# Global configuration instances
_gateway_config: Optional[GatewayConfig] = None
_broker_config: Optional[BrokerConfig] = None
_app_config: Optional[AppConfig] = None


def get_gateway_config() -> GatewayConfig:
    """Get gateway configuration instance"""
    global _gateway_config
    if _gateway_config is None:
        _gateway_config = GatewayConfig()
    return _gateway_config


def get_broker_config() -> BrokerConfig:
    """Get broker configuration instance"""
    global _broker_config
    if _broker_config is None:
        _broker_config = BrokerConfig()
    return _broker_config


def get_app_config() -> AppConfig:
    """Get application configuration instance"""
    global _app_config
    if _app_config is None:
        _app_config = AppConfig()
    return _app_config


def validate_configuration():
    """Validate all configuration settings"""
    try:
        gateway_config = get_gateway_config()
        broker_config = get_broker_config()
        app_config = get_app_config()

        broker_config.log_config()
        logger.info(
            "Application configuration",
            service=app_config.service_name,
            version=app_config.service_version,
            api_prefix=app_config.api_prefix,
        )

        if not gateway_config.has_api_key():
            logger.warning("API_KEY is not set; every message request will be rejected")

        logger.info("Configuration validation completed")
        return True

    except Exception as e:
        logger.error("Configuration validation failed", error=str(e))
        raise
