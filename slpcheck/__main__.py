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
"""Run the HTTP service: `python -m slpcheck`."""
import logging
import sys

from aiohttp import web

from . import config
from .web import create_app


def main() -> None:
    try:
        settings = config.load_settings()
    except config.ConfigError as err:
        sys.exit(f"slpcheck: {err}")

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("slpcheck").info("Listening on %s:%s", settings.listen_host, settings.listen_port)
    web.run_app(
        create_app(settings=settings),
        host=settings.listen_host,
        port=settings.listen_port,
        print=None,
    )


if __name__ == "__main__":
    main()
