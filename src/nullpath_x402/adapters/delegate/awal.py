"""
Delegate Signing Adapter (Coinbase Agentic Wallet CLI)

Pays for x402 resources through the ``awal`` CLI, which holds signing
authority and performs both the authorization and the paid request.

The CLI is always spawned with an argument vector through
``asyncio.create_subprocess_exec``; nothing is ever joined into a shell
command line, so URLs, bodies and headers containing ``;``, ``|``,
backticks or ``$()`` reach the CLI verbatim and inert.

Status probes are cached in a ``DelegateStatusCache`` (60 s TTL). Probe
failures never raise; they produce ``DelegateStatus(available=False)``.
"""

import asyncio
import json
import logging
import os
import time
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from ...config import USE_AWAL_ENV, parse_flag
from ...engine.exceptions import DelegatePaymentError

logger = logging.getLogger(__name__)


DELEGATE_RUNNER = "npx"
DELEGATE_PACKAGE = "awal@latest"

STATUS_TIMEOUT = 15.0
PAY_TIMEOUT = 60.0
STATUS_CACHE_TTL = 60.0

OUTPUT_EXCERPT_LIMIT = 200


# ---------------------------------------------------------------------------
# Process runner
# ---------------------------------------------------------------------------

class ProcessResult(BaseModel):
    """Captured output of a finished process."""
    returncode: int
    stdout: str = ""
    stderr: str = ""


class ProcessRunError(Exception):
    """
    The process could not be started, timed out, or exited non-zero.

    Attributes:
        stderr: Captured standard error (empty when the process never ran)
        not_found: The program does not exist
        timed_out: The process was killed after its time bound
    """

    def __init__(self, message: str, stderr: str = "", not_found: bool = False, timed_out: bool = False):
        super().__init__(message)
        self.stderr = stderr
        self.not_found = not_found
        self.timed_out = timed_out


async def run_process(argv: List[str], timeout: float) -> ProcessResult:
    """
    Run ``argv`` without a shell and collect its output.

    Args:
        argv: Program followed by its arguments, each passed literally
        timeout: Seconds before the process is killed

    Raises:
        ProcessRunError: Program missing or not startable, timeout, or non-zero exit
    """
    env = {**os.environ, "NO_COLOR": "1"}

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )
    except FileNotFoundError as e:
        raise ProcessRunError(f"{argv[0]}: command not found", not_found=True) from e
    except OSError as e:
        raise ProcessRunError(f"{argv[0]}: could not start ({e})") from e

    try:
        stdout_data, stderr_data = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise ProcessRunError(f"Command timeout after {timeout}s", timed_out=True)

    stdout = stdout_data.decode("utf-8", errors="replace")
    stderr = stderr_data.decode("utf-8", errors="replace")

    if process.returncode != 0:
        raise ProcessRunError(f"Command failed with exit code {process.returncode}", stderr=stderr)
    return ProcessResult(returncode=process.returncode, stdout=stdout, stderr=stderr)


def build_delegate_command(*tokens: str) -> List[str]:
    return [DELEGATE_RUNNER, DELEGATE_PACKAGE, *tokens]


# ---------------------------------------------------------------------------
# Status probe + cache
# ---------------------------------------------------------------------------

class DelegateStatus(BaseModel):
    """Availability and authentication state of the delegate CLI."""
    available: bool
    authenticated: bool = False
    address: Optional[str] = None
    error: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.available and self.authenticated


class DelegateStatusCache:
    """
    Last probe result plus the time it was stored.

    Replacement is a single reference assignment, so concurrent probes at
    worst store the same answer twice.
    """

    def __init__(self, ttl: float = STATUS_CACHE_TTL, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock
        self._entry: Optional[tuple] = None

    def get(self) -> Optional[DelegateStatus]:
        entry = self._entry
        if entry is None:
            return None
        status, stored_at = entry
        if self._clock() - stored_at >= self.ttl:
            return None
        return status

    def put(self, status: DelegateStatus) -> None:
        self._entry = (status, self._clock())

    def clear(self) -> None:
        self._entry = None


_status_cache = DelegateStatusCache()


def default_status_cache() -> DelegateStatusCache:
    return _status_cache


def clear_delegate_cache() -> None:
    """Forget the cached delegate status so the next check probes again."""
    _status_cache.clear()


def is_delegate_forced() -> bool:
    """True when ``NULLPATH_USE_AWAL`` is ``"true"`` or ``"1"``."""
    return parse_flag(os.getenv(USE_AWAL_ENV))


def _status_from_output(stdout: str) -> DelegateStatus:
    data = json.loads(stdout.strip())
    if not isinstance(data, dict):
        raise ValueError("status output is not a JSON object")
    return DelegateStatus(
        available=True,
        authenticated=data.get("authenticated") is True or data.get("loggedIn") is True,
        address=data.get("address") or data.get("walletAddress"),
    )


async def check_delegate_status(cache: Optional[DelegateStatusCache] = None) -> DelegateStatus:
    """
    Probe ``awal status --json``, using the cached answer when fresh.

    Never raises: a missing CLI, timeout or unreadable output all yield
    ``available=False`` with an ``error`` description.
    """
    if cache is None:
        cache = _status_cache

    cached = cache.get()
    if cached is not None:
        return cached

    try:
        result = await run_process(build_delegate_command("status", "--json"), timeout=STATUS_TIMEOUT)
        status = _status_from_output(result.stdout)
    except ProcessRunError as e:
        if e.not_found:
            error = "awal CLI not found"
        elif e.timed_out:
            error = "awal CLI timeout"
        else:
            error = e.stderr.strip() or str(e)
        status = DelegateStatus(available=False, error=error)
    except ValueError as e:
        status = DelegateStatus(available=False, error=f"Unreadable awal status: {e}")

    logger.debug("Delegate status: available=%s authenticated=%s", status.available, status.authenticated)
    cache.put(status)
    return status


def is_delegate_available(cache: Optional[DelegateStatusCache] = None) -> bool:
    """
    Cache-only check: True if a fresh probe found an authenticated delegate.

    Never spawns a process.
    """
    status = (cache or _status_cache).get()
    return status is not None and status.ready


async def get_delegate_address(cache: Optional[DelegateStatusCache] = None) -> Optional[str]:
    """Wallet address reported by the delegate, or None."""
    status = await check_delegate_status(cache)
    return status.address or None


# ---------------------------------------------------------------------------
# Paid request
# ---------------------------------------------------------------------------

class DelegatePaymentDetails(BaseModel):
    amount: Optional[str] = None
    recipient: Optional[str] = None
    transaction_hash: Optional[str] = Field(None, description="Settlement transaction reference")


class DelegatePaymentResponse(BaseModel):
    """
    Outcome of ``awal x402 pay``.

    Attributes:
        success: Whether the paid request succeeded
        body: Response body of the paid request
        status_code: HTTP status reported by the delegate
        error: Failure description when ``success`` is False
        payment: Settlement details, when reported
    """
    success: bool
    body: Any = None
    status_code: Optional[int] = None
    error: Optional[str] = None
    payment: Optional[DelegatePaymentDetails] = None


def build_pay_command(
    url: str,
    method: str = "GET",
    body: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> List[str]:
    """Argument vector for ``awal x402 pay``; every value is its own element."""
    argv = build_delegate_command("x402", "pay", url)
    if method.upper() != "GET":
        argv += ["-X", method.upper()]
    if body:
        argv += ["-d", body]
    for key, value in (headers or {}).items():
        argv += ["-H", f"{key}: {value}"]
    argv.append("--json")
    return argv


def _first_present(data: Dict[str, Any], *names: str) -> Any:
    for name in names:
        value = data.get(name)
        if value is not None:
            return value
    return None


def _status_code(data: Dict[str, Any], excerpt: str) -> Optional[int]:
    value = data.get("statusCode")
    if value is None:
        return None
    if isinstance(value, str) and value.isascii() and value.isdigit():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or not 100 <= value <= 599:
        raise DelegatePaymentError(f"Invalid statusCode from awal: {value!r}", output_excerpt=excerpt)
    return value


def _parse_pay_output(stdout: str, stderr: str) -> DelegatePaymentResponse:
    text = stdout.strip()
    if not text:
        return DelegatePaymentResponse(success=False, error=stderr.strip() or "Empty response from awal")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        excerpt = text[:OUTPUT_EXCERPT_LIMIT]
        raise DelegatePaymentError(
            f"Invalid JSON from awal: {excerpt}",
            cause=e,
            output_excerpt=excerpt,
        ) from e

    if not isinstance(data, dict):
        return DelegatePaymentResponse(success=True, body=data, status_code=200)

    if data.get("error"):
        return DelegatePaymentResponse(
            success=False,
            error=str(data["error"]),
            status_code=_status_code(data, text[:OUTPUT_EXCERPT_LIMIT]),
        )

    payment = data.get("payment") if isinstance(data.get("payment"), dict) else {}
    body = _first_present(data, "body", "data")
    return DelegatePaymentResponse(
        success=True,
        body=data if body is None else body,
        status_code=_status_code(data, text[:OUTPUT_EXCERPT_LIMIT]) or 200,
        payment=DelegatePaymentDetails(
            amount=payment.get("amount"),
            recipient=payment.get("recipient"),
            transaction_hash=payment.get("transactionHash") or data.get("txHash"),
        ),
    )


def _error_from_stderr(stderr: str, fallback: str) -> str:
    try:
        data = json.loads(stderr)
    except json.JSONDecodeError:
        return stderr.strip() or fallback
    if isinstance(data, dict):
        return str(data.get("error") or data.get("message") or stderr)
    return stderr.strip()


async def delegate_pay(
    url: str,
    method: str = "GET",
    body: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> DelegatePaymentResponse:
    """
    Perform a paid request through ``awal x402 pay``.

    Args:
        url: Resource to call
        method: HTTP method (``-X`` is only passed for non-GET)
        body: Request body text
        headers: Request headers, passed as repeated ``-H "k: v"``

    Returns:
        DelegatePaymentResponse; CLI-reported failures come back with
        ``success=False`` rather than raising

    Raises:
        DelegatePaymentError: Output was not JSON, or the CLI failed
            without any error output
    """
    argv = build_pay_command(url, method=method, body=body, headers=headers)
    logger.info("Paying through delegate: %s %s", DELEGATE_PACKAGE, "x402 pay")

    try:
        result = await run_process(argv, timeout=PAY_TIMEOUT)
    except ProcessRunError as e:
        if e.stderr:
            logger.warning("Delegate payment failed: %s", e)
            return DelegatePaymentResponse(success=False, error=_error_from_stderr(e.stderr, str(e)))
        raise DelegatePaymentError(f"awal payment failed: {e}", cause=e) from e

    response = _parse_pay_output(result.stdout, result.stderr)
    logger.info("Delegate payment finished: success=%s status=%s", response.success, response.status_code)
    return response
