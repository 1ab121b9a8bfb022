"""Pydantic models shared between the coordinator and the presentation layer."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, model_validator

from typeahead.services.exceptions import SearchCancelled, UserVisibleError

OutcomeSource = Literal["cache", "remote", "fallback", "none"]


class SearchOutcome(BaseModel):
    status: Literal["results", "error", "superseded"] = Field(
        ...,
        description="results and error are observable; superseded outcomes must be dropped",
    )
    term: str
    results: list[str] = Field(default_factory=list)
    source: OutcomeSource = "none"
    error: str | None = None

    @model_validator(mode="after")
    def _validate_error(self) -> "SearchOutcome":
        if (self.status == "error") != (self.error is not None):
            raise ValueError("error must be set exactly when status is 'error'")
        if self.status != "results" and self.results:
            raise ValueError("only 'results' outcomes may carry results")
        return self

    @classmethod
    def found(cls, term: str, results: list[str], source: OutcomeSource) -> "SearchOutcome":
        return cls(status="results", term=term, results=list(results), source=source)

    @classmethod
    def failed(cls, term: str, error: UserVisibleError) -> "SearchOutcome":
        return cls(status="error", term=term, error=error.message)

    @classmethod
    def superseded(cls, term: str) -> "SearchOutcome":
        return cls(status="superseded", term=term)

    @property
    def observable(self) -> bool:
        return self.status != "superseded"

    def unwrap(self) -> list[str]:
        if self.status == "error":
            raise UserVisibleError(self.error or UserVisibleError().message)
        if self.status == "superseded":
            raise SearchCancelled(f"request for {self.term!r} was superseded")
        return self.results


class Loading(BaseModel):
    kind: Literal["loading"] = "loading"
    term: str


class Results(BaseModel):
    kind: Literal["results"] = "results"
    term: str
    results: list[str]


class Failed(BaseModel):
    kind: Literal["error"] = "error"
    term: str
    message: str


class Cleared(BaseModel):
    kind: Literal["cleared"] = "cleared"


SearchEmission = Annotated[
    Union[Loading, Results, Failed, Cleared],
    Field(discriminator="kind"),
]


__all__ = [
    "Cleared",
    "Failed",
    "Loading",
    "OutcomeSource",
    "Results",
    "SearchEmission",
    "SearchOutcome",
]
