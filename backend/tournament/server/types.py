from pydantic import BaseModel, ConfigDict, Field


class RecordHoleRequest(BaseModel):
    """Body of POST /matches/{match_id}/holes.

    winner stays a plain string so unknown tags are reported by the
    coordinator as an invalid hole rather than a generic validation error.
    """

    model_config = ConfigDict(extra="forbid")

    hole_number: int = Field(strict=True)
    winner: str
    team_a_score: int | None = Field(default=None, ge=1)
    team_b_score: int | None = Field(default=None, ge=1)
