#!/usr/bin/env python3
"""
Smoke test for rewards service deployments.

Never pays out: the claim step submits a solved challenge with a different
score, which the server refuses before any pull payment is created.

Flow (default):
1. Health check
2. Reward tier table
3. Withdrawal configuration status
4. Challenge issue + solve
5. Claim rejection (mismatched score)

Usage:
    ./scripts/smoke-test.py https://staging.example.com
    ./scripts/smoke-test.py https://staging.example.com --health-only
"""

import argparse
import hashlib
import secrets
import sys
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

import httpx

SkipCheck = Callable[["SmokeContext"], str | None]

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRIES = 2
EXPECTED_TIER_COUNT = 7
SMOKE_SCORE = 500
MAX_ERROR_BODY_CHARS = 500


class ApiError(RuntimeError):
    def __init__(self, status_code: int, body: str):
        super().__init__(f"API error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


def log(msg: str) -> None:
    """Print timestamped log message."""
    print(f"[{datetime.now().strftime('%H:%M:%S')}] {msg}", flush=True)


def api_json(
    client: httpx.Client,
    method: str,
    path: str,
    *,
    data: dict[str, Any] | None = None,
) -> dict[str, Any] | list[Any]:
    response = client.request(method, f"/api/v1{path}", json=data)
    if response.is_error:
        raise ApiError(response.status_code, response.text[:MAX_ERROR_BODY_CHARS])
    return response.json()


def wait_for_health(client: httpx.Client, max_attempts: int = 30, delay: float = 2.0) -> bool:
    """Wait for /health to return healthy status."""
    for attempt in range(1, max_attempts + 1):
        try:
            response = client.get("/health", timeout=10.0)
            if response.status_code == 200 and response.json().get("status") == "healthy":
                log(f"Health check passed (attempt {attempt})")
                return True
        except (httpx.HTTPError, ValueError):
            pass

        if attempt < max_attempts:
            time.sleep(delay)

    return False


def solve_pow(challenge: str, difficulty: int) -> tuple[int, str]:
    """Find a nonce where SHA256("{challenge}:{nonce}") starts with `difficulty` zero hex digits."""
    prefix = "0" * difficulty
    start_time = time.time()
    nonce = 0
    while True:
        hash_hex = hashlib.sha256(f"{challenge}:{nonce}".encode()).hexdigest()
        if hash_hex.startswith(prefix):
            log(f"PoW solved: nonce={nonce} ({time.time() - start_time:.2f}s)")
            return nonce, hash_hex
        nonce += 1


@dataclass
class SmokeContext:
    client: httpx.Client
    max_health_attempts: int
    pubkey: str

    challenge: dict[str, Any] | None = None

    def require_challenge(self) -> dict[str, Any]:
        if self.challenge is None:
            raise RuntimeError("Missing challenge (step ordering bug)")
        return self.challenge


@dataclass(frozen=True)
class Step:
    name: str
    run: Callable[[SmokeContext], None]
    # Return `None` to run the step; return a string to skip with that reason.
    skip_reason: SkipCheck | None = None


@dataclass(frozen=True)
class StepResult:
    name: str
    status: str  # passed|skipped|failed
    seconds: float
    detail: str | None = None


def _print_summary(results: list[StepResult], total_seconds: float) -> None:
    log("Summary:")
    for result in results:
        suffix = f" - {result.detail}" if result.detail else ""
        log(f"  {result.status.upper():7} {result.name} ({result.seconds:.2f}s){suffix}")
    log(f"Total: {total_seconds:.2f}s")


def run_steps(ctx: SmokeContext, steps: list[Step]) -> bool:
    results: list[StepResult] = []
    overall_start = time.time()

    for step in steps:
        reason = step.skip_reason(ctx) if step.skip_reason else None
        if reason:
            log(f"SKIP: {step.name}: {reason}")
            results.append(StepResult(step.name, "skipped", 0.0, reason))
            continue

        log(f"STEP: {step.name}")
        start = time.time()
        try:
            step.run(ctx)
        except Exception as e:
            results.append(StepResult(step.name, "failed", time.time() - start, str(e)))
            _print_summary(results, time.time() - overall_start)
            return False

        elapsed = time.time() - start
        results.append(StepResult(step.name, "passed", elapsed))
        log(f"OK: {step.name} ({elapsed:.2f}s)")

    _print_summary(results, time.time() - overall_start)
    return True


def step_health(ctx: SmokeContext) -> None:
    if not wait_for_health(ctx.client, max_attempts=ctx.max_health_attempts):
        raise RuntimeError("Health check failed")


def step_tiers(ctx: SmokeContext) -> None:
    tiers = api_json(ctx.client, "GET", "/rewards/tiers")
    if len(tiers) != EXPECTED_TIER_COUNT:
        raise RuntimeError(f"Expected {EXPECTED_TIER_COUNT} reward tiers, got {len(tiers)}")
    if tiers[0]["min_score"] != 100 or tiers[-1]["max_score"] is not None:
        raise RuntimeError(f"Unexpected tier bounds: first={tiers[0]} last={tiers[-1]}")


def step_withdrawal_status(ctx: SmokeContext) -> None:
    status = api_json(ctx.client, "GET", "/withdrawals/status")
    log(f"Withdrawals configured={status['configured']} mode={status['mode']}")
    if not status["configured"]:
        log("WARNING: withdrawals not configured; reward claims will fail with 502")


def step_challenge(ctx: SmokeContext) -> None:
    ctx.challenge = api_json(
        ctx.client,
        "POST",
        "/challenges",
        data={"pubkey": ctx.pubkey, "score": SMOKE_SCORE, "level": 0},
    )
    log(
        f"Challenge issued: difficulty={ctx.challenge['difficulty']} "
        f"estimated={ctx.challenge['estimated_time']}"
    )
    nonce, hash_hex = solve_pow(ctx.challenge["challenge"], ctx.challenge["difficulty"])
    ctx.challenge.update(nonce=nonce, hash=hash_hex)


def step_claim_rejected(ctx: SmokeContext) -> None:
    challenge = ctx.require_challenge()
    claim = {
        "pubkey": ctx.pubkey,
        "score": SMOKE_SCORE + 1,
        "challenge": challenge["challenge"],
        "nonce": challenge["nonce"],
        "hash": challenge["hash"],
    }
    try:
        api_json(ctx.client, "POST", "/rewards/claim", data=claim)
    except ApiError as e:
        if e.status_code != 400:
            raise
        log(f"Claim rejected as expected: {e.body}")
        return
    raise RuntimeError("Mismatched claim was accepted")


def main() -> int:
    parser = argparse.ArgumentParser(description="Rewards service smoke test")
    parser.add_argument("base_url", help="Base URL (e.g., https://staging.example.com)")
    parser.add_argument(
        "--health-only",
        action="store_true",
        help="Only run health check, skip full flow",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT_SECONDS,
        help=f"HTTP timeout seconds (default: {DEFAULT_TIMEOUT_SECONDS:g})",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=DEFAULT_RETRIES,
        help=f"Connection retries for transient failures (default: {DEFAULT_RETRIES})",
    )
    parser.add_argument(
        "--max-health-attempts",
        type=int,
        default=30,
        help="Max health check attempts (default: 30)",
    )
    args = parser.parse_args()

    try:
        transport = httpx.HTTPTransport(retries=args.retries)
        with httpx.Client(
            base_url=args.base_url.rstrip("/"), timeout=args.timeout, transport=transport
        ) as client:
            ctx = SmokeContext(
                client=client,
                max_health_attempts=args.max_health_attempts,
                pubkey=secrets.token_hex(32),
            )

            steps: list[Step] = [Step("health", step_health)]
            if args.health_only:
                log("Health-only mode: skipping full flow")
            else:
                steps.extend(
                    [
                        Step("reward tiers", step_tiers),
                        Step("withdrawal status", step_withdrawal_status),
                        Step("challenge", step_challenge),
                        Step("claim rejected", step_claim_rejected),
                    ]
                )

            ok = run_steps(ctx, steps)
        return 0 if ok else 1
    except Exception as e:
        log(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
