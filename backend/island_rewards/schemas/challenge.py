from pydantic import BaseModel, Field

from island_rewards.schemas.reward import PUBKEY_PATTERN


class ChallengeCreate(BaseModel):
    pubkey: str = Field(..., pattern=PUBKEY_PATTERN, description="Player's hex pubkey")
    score: int = Field(..., ge=0, description="Score the reward is claimed for")
    level: int = Field(0, ge=0, description="Game level reached, scales difficulty")


class ChallengeResponse(BaseModel):
    challenge_id: str
    challenge: str
    difficulty: int
    timestamp: int  # epoch ms
    target: str
    estimated_time: str
    algorithm: str = "sha256"
