"""qparas: query the Paras marketplace API and print every page as one JSON value.

Example::

    qparas token-series collection_id=mint.havendao.near __sort=metadata.score::-1

``__sort=FIELD::DIRECTION`` orders results and derives the cursor for the
next page, ``__min=N`` stops once N entries are collected, ``__limit`` sets
the page size (default 30).
"""

from __future__ import annotations

import json
import logging
import os
import sys

import click

from .client import ParasClient
from .config import LOG_LEVELS, OUTPUT_MODES, preferred_config_path, resolve_settings
from .errors import ParasError
from .formatters import format_json, format_ndjson
from .paginator import Paginator
from .progress import ProgressReporter
from .query import parse_query_args

log = logging.getLogger(__name__)

_SERVICE_NAME = "qparas"
_RETRYABLE_STATUS_CODES = {429, 502, 503, 504}


def _exit_code_for_error(err: ParasError) -> int:
    """Map failures to deterministic process exit codes."""
    if err.code == "UNEXPECTED":
        return 17
    if err.code in {"VALIDATION", "CONFIG"}:
        return 2
    if err.code in {"TIMEOUT", "NETWORK"}:
        return 13
    if err.status_code in {401, 403}:
        return 10
    if err.status_code == 429:
        return 11
    if err.status_code == 404:
        return 12
    if err.status_code >= 500:
        return 15
    return 16


def _exit_with_error(err: ParasError) -> None:
    exit_code = _exit_code_for_error(err)
    payload = {
        "ok": False,
        "service": _SERVICE_NAME,
        "error": {
            "code": err.code,
            "message": err.message,
            "status": err.status_code,
            "retryable": err.code in {"TIMEOUT", "NETWORK"} or err.status_code in _RETRYABLE_STATUS_CODES,
            "exitCode": exit_code,
        },
    }
    click.echo(json.dumps(payload, sort_keys=True, separators=(",", ":")), err=True)
    sys.exit(exit_code)


def _configure_logging(level: int) -> None:
    logging.basicConfig(
        stream=sys.stderr,
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _emit_result(value: object, output: str) -> None:
    try:
        if output == "ndjson":
            for line in format_ndjson(value):
                click.echo(line)
        else:
            click.echo(format_json(value))
    except BrokenPipeError:
        # Reader went away (e.g. piped into head); drop the rest quietly.
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("path", required=False)
@click.argument("params", nargs=-1)
@click.option("--base-url", default=None, help="API base URL (or set PARAS_URL).")
@click.option("--timeout", default=None, type=float, help="HTTP request timeout in seconds.")
@click.option("--retries", default=None, type=int, help="Retries for transient HTTP/network failures.")
@click.option("--retry-backoff-ms", default=None, type=int, help="Base retry backoff in milliseconds.")
@click.option(
    "--output",
    default=None,
    type=click.Choice(OUTPUT_MODES),
    help="json prints one pretty value, ndjson prints one record per line.",
)
@click.option("--max-pages", default=None, type=int, help="Stop after this many requests.")
@click.option("--log-level", default=None, type=click.Choice(LOG_LEVELS, case_sensitive=False), help="Log level.")
@click.option("--quiet", "-q", is_flag=True, help="Do not report progress on stderr.")
@click.option("--config-path", "show_config_path", is_flag=True, help="Print the effective config file path and exit.")
def main(
    path: str | None,
    params: tuple[str, ...],
    base_url: str | None,
    timeout: float | None,
    retries: int | None,
    retry_backoff_ms: int | None,
    output: str | None,
    max_pages: int | None,
    log_level: str | None,
    quiet: bool,
    show_config_path: bool,
):
    """Query PATH on the Paras API with KEY=VALUE parameters, following every page."""
    try:
        settings = resolve_settings(
            base_url=base_url,
            timeout=timeout,
            retries=retries,
            retry_backoff_ms=retry_backoff_ms,
            output=output,
            max_pages=max_pages,
            log_level=log_level,
        )
    except ParasError as e:
        _exit_with_error(e)

    _configure_logging(settings.log_level_number)

    if show_config_path:
        click.echo(settings.config_path or str(preferred_config_path()))
        return

    try:
        if not path:
            raise ParasError("VALIDATION", "missing endpoint PATH (e.g. token-series)", 0)
        query = parse_query_args(params)
        log.debug("user queries: %s", list(query.pairs))
        log.info("base url: %s/%s", settings.base_url, path)

        progress = ProgressReporter(enabled=not quiet)
        client = ParasClient(
            settings.base_url,
            timeout=settings.timeout,
            retries=settings.retries,
            retry_backoff_ms=settings.retry_backoff_ms,
        )
        try:
            paginator = Paginator(
                lambda request_params: client.get(path, request_params),
                query,
                on_progress=progress.update,
                max_pages=settings.max_pages,
            )
            result = paginator.run()
        finally:
            progress.clear()
            client.close()
    except ParasError as e:
        _exit_with_error(e)

    _emit_result(result.value, settings.output)
    progress.finish(result.pages, result.entries)


if __name__ == "__main__":
    main()
