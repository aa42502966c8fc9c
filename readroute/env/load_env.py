import os
from typing import TypeVar

from dotenv import dotenv_values
from pydantic import ValidationError

from readroute.errors import ConfigurationError

from .env import Env

EnvT = TypeVar("EnvT", bound=Env)


def _read_sources(env_file: str | None) -> dict[str, str]:
    sources = {name: value for name, value in os.environ.items() if value}

    if env_file and os.path.exists(env_file):
        sources.update(
            {
                name: value
                for name, value in dotenv_values(dotenv_path=env_file).items()
                if value is not None
            }
        )

    return sources


def load_env(
    default: type[EnvT] = Env,
    env_file: str | None = None,
    override: EnvT | None = None,
) -> EnvT:
    """
    Build an Env from READROUTE_* settings.

    Later sources win: the process environment, then ``env_file``
    (``.env`` in the working directory by default), then every field of
    ``override``. Raw strings are coerced with ``types_map()`` before
    pydantic validates them.
    """
    env_type = type(override) if override is not None else default
    types_map = env_type.types_map()

    raw = _read_sources(".env" if env_file is None else env_file)

    try:
        values = {
            name: types_map[name](value)
            for name, value in raw.items()
            if name in types_map
        }

        if override is not None:
            values.update(override.model_dump(exclude_none=True))

        return env_type(**values)

    except (ValueError, ValidationError) as err:
        raise ConfigurationError(f"Invalid readroute environment: {err}") from err
