"""Issue-suggestion models."""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class GitHubIssue(BaseModel):
    number: int = Field(description="Issue number.")
    title: str
    url: str = Field(description="Browser URL of the issue.")
    state: Literal["open", "closed"]
    repository: str = Field(description="owner/repo")
    comments: int = 0
    created_at: str = Field(default="", description="ISO-8601 creation time.")
    labels: list[str] = Field(default_factory=list)


class IssueSuggestion(BaseModel):
    """A model-proposed issue search for one error signature.

    Accepts the camelCase keys the model is asked to emit.
    """

    model_config = ConfigDict(populate_by_name=True)

    error_signature: str = Field(
        default="", validation_alias=AliasChoices("errorSignature", "error_signature")
    )
    search_query: str = Field(
        default="", validation_alias=AliasChoices("searchQuery", "search_query")
    )
    description: str = ""
    potential_solutions: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("potentialSolutions", "potential_solutions"),
    )
    linked_issues: list[GitHubIssue] | None = None
    source_files: list[str] | None = None
