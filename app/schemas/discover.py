from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

RecommendStatus = Literal["supported", "unsupported"]


class QA(BaseModel):
    model_config = ConfigDict(frozen=True)

    q: str = Field(min_length=1, max_length=2000)
    a: str = Field(min_length=1, max_length=4000)


class DiscoverNextRequest(BaseModel):
    qas: list[QA] = Field(default_factory=list)


class AskAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: Literal["ask"]
    question: str = Field(min_length=1)


class RecommendAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: Literal["recommend"]
    status: RecommendStatus
    role_title: str | None = None
    rationale: str = ""
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    message_if_unsupported: str | None = None


Action = Annotated[Union[AskAction, RecommendAction], Field(discriminator="action")]
action_adapter: TypeAdapter[AskAction | RecommendAction] = TypeAdapter(Action)


class QuestionResponse(BaseModel):
    type: Literal["question"] = "question"
    question: str


class UnsupportedResult(BaseModel):
    type: Literal["result"] = "result"
    status: Literal["unsupported"] = "unsupported"
    message: str


class NotFoundResult(BaseModel):
    type: Literal["result"] = "result"
    status: Literal["not_found"] = "not_found"
    role: str
    message: str


class SupportedResult(BaseModel):
    type: Literal["result"] = "result"
    status: Literal["supported"] = "supported"
    role: str
    slug: str
    message: str


DiscoverNextResponse = Union[QuestionResponse, UnsupportedResult, NotFoundResult, SupportedResult]


class QuizAnswer(BaseModel):
    index: int
    answer: str = Field(min_length=1, max_length=4000)


class QuizRequest(BaseModel):
    answers: list[QuizAnswer] = Field(default_factory=list)


class QuizResult(BaseModel):
    status: RecommendStatus
    role: str | None = None
    slug: str | None = None
    message: str
