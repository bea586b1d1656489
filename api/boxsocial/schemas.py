from datetime import date

from pydantic import BaseModel, Field, StrictFloat, StrictInt


class CreateChallengeRequest(BaseModel):
    title: str
    type: str
    start_date: date
    end_date: date
    invited_ids: list[str] = Field(default_factory=list)


class RespondRequest(BaseModel):
    action: str
    message: str | None = None


class AddParticipantsRequest(BaseModel):
    participant_ids: list[str] = Field(default_factory=list)


class SubmitResultRequest(BaseModel):
    # Booleans and numeric strings are refused, not coerced.
    result_value: StrictInt | StrictFloat


class FriendRequestCreate(BaseModel):
    target_id: str


class FriendRespondRequest(BaseModel):
    action: str
