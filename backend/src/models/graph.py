"""Graph data models."""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field


class NodeType(str, Enum):
    NOTE = "note"
    CATEGORY = "category"
    TAG = "tag"


class GraphNode(BaseModel):
    """A note, category or tag vertex."""
    id: str = Field(..., description="Unique identifier within one graph")
    name: str = Field(..., description="Display name")
    type: NodeType
    val: float = Field(default=1, description="Visual size")
    color: str = Field(..., description="Fill color (hex)")
    connections: int = Field(default=0, ge=0, description="Number of incident edges")
    note_id: Optional[str] = Field(None, description="Original note id for note nodes")
    input_type: Optional[str] = None


class GraphLink(BaseModel):
    """Edge from a note to one of its category or tag nodes."""
    source: str = Field(..., description="ID of the note node")
    target: str = Field(..., description="ID of the category or tag node")
    value: int = 1
    color: Optional[str] = None


class GraphData(BaseModel):
    """Nodes and links for one render pass."""
    nodes: List[GraphNode]
    links: List[GraphLink]


class GraphContext(BaseModel):
    """Presentation context a transform is computed for."""
    theme: Literal["light", "dark"] = "light"
    highlighted_note_id: Optional[str] = None
    is_mobile: bool = False


class NodePosition(BaseModel):
    x: float
    y: float
    scale: float = 1.0


class PackNode(BaseModel):
    """Circle produced by the pack layout."""
    name: str
    depth: int
    value: float
    x: float = 0.0
    y: float = 0.0
    r: float = 0.0
    color: Optional[str] = None
    children: List["PackNode"] = Field(default_factory=list)


class ForceParameters(BaseModel):
    """Tuning knobs handed to a force-simulation renderer."""
    charge_strength: float
    link_distance: float
    collision_radius: Optional[float] = None
    center_strength: Optional[float] = None
    radial_strength: Optional[float] = None
    node_rel_size: float = 6
    zoom_bounds: Tuple[float, float] = (0.5, 4.0)
    initial_zoom: Optional[float] = None
    cooldown_ticks: Optional[int] = None
    cooldown_time_ms: Optional[int] = None
    distance_max: Optional[float] = None


class GraphView(BaseModel):
    """Everything one render adapter needs."""
    view: str
    renderer: str
    data: GraphData
    params: Optional[ForceParameters] = None
    positions: Dict[str, NodePosition] = Field(default_factory=dict)
    pack: Optional[PackNode] = None
    background_color: Optional[str] = None
    settings: Dict[str, Any] = Field(default_factory=dict)


class ViewInfo(BaseModel):
    name: str
    renderer: str
    description: str


class NodeClickRequest(BaseModel):
    node_id: str = Field(..., min_length=1)
    view: str = "graph2d"
    is_mobile: bool = False


class NodeClickResult(BaseModel):
    """What the client should do after a node click."""
    action: Literal["navigate", "popover", "notify"]
    route: Optional[str] = None
    note_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    connected_notes: Optional[int] = None


class NodeSearchResult(BaseModel):
    id: str
    name: str
    type: NodeType


PackNode.model_rebuild()
