"""Minesweeper-specific configuration."""

from pydantic import BaseModel, Field, model_validator


class GameConfig(BaseModel):
    """
    Board dimensions and mine count.

    Frozen: a battle's config never changes once it has started. The wire
    form uses ``mineCount``; Python code uses ``mine_count``.
    """

    rows: int = Field(..., ge=1, description="Number of board rows")
    cols: int = Field(..., ge=1, description="Number of board columns")
    mine_count: int = Field(
        ...,
        ge=0,
        alias="mineCount",
        description="Number of hidden mines; must leave at least one safe cell",
    )

    @model_validator(mode="after")
    def validate_mine_count(self) -> "GameConfig":
        if self.mine_count >= self.total_cells:
            raise ValueError(
                f"mineCount must be less than total cells ({self.total_cells})"
            )
        return self

    @property
    def total_cells(self) -> int:
        return self.rows * self.cols

    @property
    def total_safe(self) -> int:
        return self.total_cells - self.mine_count

    class Config:
        extra = "forbid"
        frozen = True
        populate_by_name = True
