# slpcheck - A Minecraft server list ping client with DNS-over-HTTPS discovery
# Copyright (C) 2016-2023 Lloyd Dilley, Felix Ern (MindSolve)
# http://www.dilley.me/
#
# Secondary optimization and customization are carried out by @molanp.
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License along
# with this program; if not, write to the Free Software Foundation, Inc.,
# 51 Franklin Street, Fifth Floor, Boston, MA 02110-1301 USA.
"""Settings of the HTTP service, read from the environment when the service starts."""
import os
from typing import Mapping, NamedTuple

from .resolver import DohResolver
from .session import SlpSession


class ConfigError(ValueError):
    """An environment variable holds a value of the wrong type."""


class Settings(NamedTuple):
    # --- Service ---
    listen_host: str = "0.0.0.0"
    listen_port: int = 8787
    log_level: str = "INFO"
    # --- Queries ---
    doh_url: str = DohResolver.DEFAULT_DOH_URL
    doh_timeout: float = DohResolver.DEFAULT_TIMEOUT
    connect_timeout: float = SlpSession.DEFAULT_CONNECT_TIMEOUT
    response_timeout: float = SlpSession.DEFAULT_RESPONSE_TIMEOUT
    write_delay: float = SlpSession.DEFAULT_WRITE_DELAY


def _read(environ: Mapping[str, str], name: str, default, cast):
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a {cast.__name__}, got {raw!r}") from None


def load_settings(environ: Mapping[str, str] = os.environ) -> Settings:
    """
    Build the settings from `SLPCHECK_*` environment variables, falling back to the defaults.

    :raise ConfigError: naming the first variable that could not be parsed
    """
    defaults = Settings()
    return Settings(
        listen_host=_read(environ, "SLPCHECK_LISTEN_HOST", defaults.listen_host, str),
        listen_port=_read(environ, "SLPCHECK_LISTEN_PORT", defaults.listen_port, int),
        log_level=_read(environ, "SLPCHECK_LOG_LEVEL", defaults.log_level, str).upper(),
        doh_url=_read(environ, "SLPCHECK_DOH_URL", defaults.doh_url, str),
        doh_timeout=_read(environ, "SLPCHECK_DOH_TIMEOUT", defaults.doh_timeout, float),
        connect_timeout=_read(environ, "SLPCHECK_CONNECT_TIMEOUT", defaults.connect_timeout, float),
        response_timeout=_read(environ, "SLPCHECK_RESPONSE_TIMEOUT", defaults.response_timeout, float),
        write_delay=_read(environ, "SLPCHECK_WRITE_DELAY", defaults.write_delay, float),
    )
