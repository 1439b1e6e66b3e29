"""
Pydantic models for the roads and POIs documents
Field aliases match the JSON consumed by the game runtime
"""

from enum import Enum
from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field


class RoadClass(str, Enum):
    MOTORWAY = "motorway"
    TRUNK = "trunk"
    PRIMARY = "primary"
    SECONDARY = "secondary"
    TERTIARY = "tertiary"
    OTHER = "other"


class POICategory(str, Enum):
    CITY = "city"
    TOWN = "town"
    FUEL_STATION = "fuel_station"


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, use_enum_values=True)


# ============================================================
# Roads document
# ============================================================

class Origin(_Document):
    lat: float
    lon: float


class Bounds(_Document):
    min_x: float = Field(0.0, alias="minX")
    max_x: float = Field(0.0, alias="maxX")
    min_y: float = Field(0.0, alias="minY")
    max_y: float = Field(0.0, alias="maxY")
    min_z: float = Field(0.0, alias="minZ")
    max_z: float = Field(0.0, alias="maxZ")


class RoadsMeta(_Document):
    origin: Origin
    bounds: Bounds
    total_roads: int = Field(alias="totalRoads")
    total_points: int = Field(alias="totalPoints")
    points_with_elevation: int = Field(alias="pointsWithElevation")
    total_pois: int = Field(alias="totalPOIs")


class RoadRecord(_Document):
    id: str
    type: RoadClass
    name: Optional[str] = None
    width: float
    speed_limit: int = Field(alias="speedLimit")
    lanes: int
    surface: str
    points: List[Tuple[float, float, float]] = Field(min_length=2)  # [x, y=elevation, z]


class RoadsDocument(_Document):
    meta: RoadsMeta
    roads: List[RoadRecord] = Field(default_factory=list)


# ============================================================
# POIs document
# ============================================================

class POIRecord(_Document):
    id: str
    type: POICategory
    name: Optional[str] = None
    x: float
    y: float
    z: float


class POIsDocument(_Document):
    origin: Origin
    pois: List[POIRecord] = Field(default_factory=list)
