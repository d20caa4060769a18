from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from qa_gateway.rag.types import ResolutionResult, ResolutionSource


class QueryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str | None = None
    top_k: int | None = Field(default=None, alias="topK", ge=1, le=100)


class SimilarQuestionItem(BaseModel):
    question: str
    score: float


class QueryResponse(BaseModel):
    question: str
    answer: str
    confidence: float
    similar_questions: list[SimilarQuestionItem] = Field(
        default_factory=list, serialization_alias="similarQuestions"
    )
    source: ResolutionSource

    @classmethod
    def from_result(cls, result: ResolutionResult) -> "QueryResponse":
        return cls(
            question=result.question,
            answer=result.answer,
            confidence=result.confidence,
            similar_questions=[
                SimilarQuestionItem(question=item.question, score=item.score)
                for item in result.similar_questions
            ],
            source=result.source,
        )


class HealthResponse(BaseModel):
    status: str
    timestamp: str


class ErrorResponse(BaseModel):
    error: str
