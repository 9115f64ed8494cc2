from typing import Optional
from functools import cache

from pathlib import Path
from pydantic import HttpUrl
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource
)


def read_key_file(path, label):
    """ Read a credential from a file, stripping surrounding whitespace.
    """
    try:
        with open(path, 'r') as key_file:
            return key_file.read().strip()
    except FileNotFoundError:
        raise ValueError(f"{label} not found: {path}")
    except PermissionError:
        raise ValueError(f"cannot read {label}: {path}")


class Settings(BaseSettings):
    """ Settings can be read from a config.yaml file, 
        or from the environment, with environment variables prepended 
        with "s3stream_" (case insensitive). The environment variables can
        be passed in the environment or in a .env file. 

        Credentials are either given directly, or as paths to files
        containing them (access_key_path and secret_key_path). Direct 
        values take precedence.
    """

    endpoint: Optional[HttpUrl] = None
    region: str = 'us-east-1'
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    session_token: Optional[str] = None
    access_key_path: Optional[Path] = None
    secret_key_path: Optional[Path] = None
    log_level: str = 'INFO'
    timeout: float = 60.0
    max_pool_connections: int = 30

    model_config = SettingsConfigDict(
        yaml_file="config.yaml",
        env_file='.env',
        env_prefix='s3stream_',
        env_nested_delimiter="__",
        env_file_encoding='utf-8'
    )

    def get_credentials(self):
        """ Returns the (access_key, secret_key) pair, reading key files 
            where no direct value is configured.
        """
        access_key = self.access_key
        if access_key is None and self.access_key_path:
            access_key = read_key_file(self.access_key_path, 'access_key_path')

        secret_key = self.secret_key
        if secret_key is None and self.secret_key_path:
            secret_key = read_key_file(self.secret_key_path, 'secret_key_path')

        return access_key or '', secret_key or ''


    @classmethod
    def settings_customise_sources(  # noqa: PLR0913
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


@cache
def get_settings():
    return Settings()
