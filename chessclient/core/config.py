"""Client settings. Defaults point at a locally running match server."""

import os
from dataclasses import dataclass, fields
from typing import Self

from chessclient.core.exceptions import ConfigError

ENV_PREFIX = "CHESSCLIENT_"


@dataclass(frozen=True)
class ClientConfig:
    host: str = "localhost:8080"
    scheme: str = "wss"
    matchmaking_path: str = "/matches/ws"
    engine_path: str = "/engines/ws"
    # seconds to wait after the socket opens before sending the first event
    settle_delay: float = 0.05
    # seconds an action stays open to an asynchronous match_error
    commit_window: float = 0.2
    # how long a transient message stays on screen
    message_seconds: float = 2.0

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Self:
        """Override any default with CHESSCLIENT_<FIELD NAME> (e.g. CHESSCLIENT_COMMIT_WINDOW=0.5)"""
        environ = os.environ if environ is None else environ
        overrides: dict[str, str | float] = {}
        for config_field in fields(cls):
            raw = environ.get(f"{ENV_PREFIX}{config_field.name.upper()}")
            if raw is None:
                continue
            if config_field.type not in (float, "float"):
                overrides[config_field.name] = raw
                continue
            try:
                overrides[config_field.name] = float(raw)
            except ValueError as exc:
                raise ConfigError(
                    f"{ENV_PREFIX}{config_field.name.upper()}={raw!r} is not a number."
                ) from exc
        return cls(**overrides)
