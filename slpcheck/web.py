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
"""
HTTP front of the checker.

    GET /?address=example.com[&port=25565][&version=1.20.4]

answers with `{"success": bool, "message": str, "data"?: object}`.
"""
import functools
import json
import logging

import aiohttp
from aiohttp import web

from . import config
from .checker import Checker, QueryOutcome
from .errors import InvalidPort, check_port
from .resolver import DohResolver

logger = logging.getLogger(__name__)

CHECKER_KEY = web.AppKey("checker", Checker)

RESPONSE_HEADERS = {"Access-Control-Allow-Methods": "GET"}

_dumps = functools.partial(json.dumps, indent=2, ensure_ascii=False)


def _parse_port(raw: str | None) -> int | None:
    """Query string port, None when absent."""
    if raw is None or raw == "":
        return None
    try:
        port = int(raw)
    except ValueError:
        raise InvalidPort(raw) from None
    return check_port(port)


def _json_response(outcome: QueryOutcome) -> web.Response:
    return web.json_response(outcome.to_dict(), headers=RESPONSE_HEADERS, dumps=_dumps)


async def handle_status(request: web.Request) -> web.Response:
    params = request.query
    address = params.get("address")
    try:
        port = _parse_port(params.get("port"))
    except InvalidPort as err:
        outcome = QueryOutcome.failure(err)
    else:
        outcome = await request.app[CHECKER_KEY].query(address, port, params.get("version"))

    logger.info("%s -> %s", request.query_string, outcome.message)
    return _json_response(outcome)


def _checker_context(settings: config.Settings):
    async def context(app: web.Application):
        """Own one DoH session for the whole life of the app."""
        session = aiohttp.ClientSession()
        resolver = DohResolver(session, settings.doh_url, settings.doh_timeout)
        app[CHECKER_KEY] = Checker(
            resolver,
            connect_timeout=settings.connect_timeout,
            response_timeout=settings.response_timeout,
            write_delay=settings.write_delay,
        )
        yield
        await session.close()

    return context


def create_app(checker: Checker | None = None, settings: config.Settings | None = None) -> web.Application:
    """
    Build the web application.

    :param checker: Checker answering the queries. If omitted, one is built from `settings`
        when the app starts.
    :param settings: Service settings, read from the environment if omitted.
    """
    app = web.Application()
    if checker is None:
        if settings is None:
            settings = config.load_settings()
        app.cleanup_ctx.append(_checker_context(settings))
    else:
        app[CHECKER_KEY] = checker
    app.router.add_get("/", handle_status)
    return app
