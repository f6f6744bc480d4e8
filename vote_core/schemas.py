from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Annotated, TypeVar

from pydantic import BaseModel, Field


MAX_IDENTIFIER = 2**32 - 1
MAX_BALANCE = 2**128 - 1
MAX_U8 = 2**8 - 1

Identifier = Annotated[int, Field(ge=0, le=MAX_IDENTIFIER)]
Balance = Annotated[int, Field(ge=0, le=MAX_BALANCE)]
U8 = Annotated[int, Field(ge=0, le=MAX_U8)]


class IdPolicy(str, Enum):
    COUNTER = "counter"
    SIZE = "size"


TBaseSchema = TypeVar("TBaseSchema", bound="BaseSchema")


class BaseSchema(BaseModel):
    def to_json(self) -> str:
        return self.model_dump_json()

    def to_dict(self) -> dict[str, object]:
        return self.model_dump()

    @classmethod
    def from_json(cls: type[TBaseSchema], data: str) -> TBaseSchema:
        return cls.model_validate_json(data)

    @classmethod
    def from_dict(cls: type[TBaseSchema], data: Mapping[str, object]) -> TBaseSchema:
        return cls.model_validate(data)


class Voter(BaseSchema):
    case_id: Identifier
    voter: str
    amount_hold: Balance
    vote_credit: Balance


class Vote(BaseSchema):
    case_id: Identifier
    evidence_id: Identifier
    voter: str
    yes_credit: U8
    no_credit: U8
    distribution_reward: U8


class VoterOutput(Voter):
    voter_id: Identifier

    @classmethod
    def from_record(cls, voter_id: int, voter: Voter) -> "VoterOutput":
        return cls(voter_id=voter_id, **voter.model_dump())

    def to_voter(self) -> Voter:
        return Voter.model_validate(self.model_dump(exclude={"voter_id"}))


class VoteOutput(Vote):
    vote_id: Identifier

    @classmethod
    def from_record(cls, vote_id: int, vote: Vote) -> "VoteOutput":
        return cls(vote_id=vote_id, **vote.model_dump())

    def to_vote(self) -> Vote:
        return Vote.model_validate(self.model_dump(exclude={"vote_id"}))


class StoreStats(BaseSchema):
    voter_count: int = Field(ge=0)
    vote_count: int = Field(ge=0)
    next_voter_id: int
    next_vote_id: int
    id_policy: IdPolicy
    code_hash: str | None = None
