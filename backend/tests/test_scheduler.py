"""Tests for the periodic cleanup job."""

from datetime import timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from island_rewards import scheduler
from island_rewards.models.challenge import PowChallenge
from island_rewards.models.claim import ClaimAttempt, RewardClaim
from island_rewards.services.pow_service import issue_challenge, now_ms
from island_rewards.services.reward_service import ClaimLedger
from tests.test_utils import OTHER_PUBKEY, PUBKEY, utcnow

DAY_MS = 24 * 3600 * 1000


def test_cleanup_job_removes_expired_records(db_session, monkeypatch):
    monkeypatch.setattr(scheduler, "SessionLocal", sessionmaker(bind=db_session.get_bind()))
    ledger = ClaimLedger(db_session)

    expired = issue_challenge(db_session, PUBKEY, 100, 0)
    expired.expires_at = utcnow() - timedelta(minutes=10)
    issue_challenge(db_session, PUBKEY, 200, 0)
    db_session.commit()

    ledger.record_claim_attempt(PUBKEY, at_ms=now_ms() - DAY_MS - 1000)
    ledger.record_claim_attempt(OTHER_PUBKEY, at_ms=now_ms() - DAY_MS - 1000)
    ledger.record_reward_claim(PUBKEY, 500)

    scheduler.cleanup_job()
    db_session.expire_all()

    assert db_session.scalar(select(func.count(PowChallenge.id))) == 1
    assert db_session.scalar(select(func.count(ClaimAttempt.id))) == 0
    # Claimed scores are never cleaned up
    assert db_session.scalar(select(func.count(RewardClaim.id))) == 1
