"""Pydantic models for graph display settings."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_BACKGROUND = "hsl(229 19% 12%)"


class GraphSettings(BaseModel):
    """Per-user settings for the 3D network view (persisted, last write wins)."""
    model_config = ConfigDict(populate_by_name=True)

    node_size: float = Field(default=6, ge=1, le=20, alias="nodeSize")
    link_width: float = Field(default=1, ge=0.1, le=5, alias="linkWidth")
    link_distance: float = Field(default=120, ge=30, le=300, alias="linkDistance")
    enable_node_drag: bool = Field(default=True, alias="enableNodeDrag")
    enable_navigation_controls: bool = Field(default=True, alias="enableNavigationControls")
    show_nav_info: bool = Field(default=True, alias="showNavInfo")
    enable_pointer_interaction: bool = Field(default=True, alias="enablePointerInteraction")
    background_color: str = Field(default=DEFAULT_BACKGROUND, alias="backgroundColor")
    enable_node_fixing: bool = Field(
        default=True,
        alias="enableNodeFixing",
        description="Pin nodes where they are dropped after a drag",
    )


class GraphSettingsUpdateRequest(BaseModel):
    """Partial update; omitted fields keep their stored value."""
    model_config = ConfigDict(populate_by_name=True)

    node_size: Optional[float] = Field(None, ge=1, le=20, alias="nodeSize")
    link_width: Optional[float] = Field(None, ge=0.1, le=5, alias="linkWidth")
    link_distance: Optional[float] = Field(None, ge=30, le=300, alias="linkDistance")
    enable_node_drag: Optional[bool] = Field(None, alias="enableNodeDrag")
    enable_navigation_controls: Optional[bool] = Field(None, alias="enableNavigationControls")
    show_nav_info: Optional[bool] = Field(None, alias="showNavInfo")
    enable_pointer_interaction: Optional[bool] = Field(None, alias="enablePointerInteraction")
    background_color: Optional[str] = Field(None, max_length=64, alias="backgroundColor")
    enable_node_fixing: Optional[bool] = Field(None, alias="enableNodeFixing")


class SimulationSettings(BaseModel):
    """Live-tunable knobs of the 2D network view; never persisted."""
    link_distance: float = Field(default=100, ge=10, le=500)
    charge_strength: float = Field(default=-300, ge=-1000, le=0)
    collision_radius: float = Field(default=5, ge=1, le=50)
