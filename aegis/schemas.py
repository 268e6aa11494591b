import enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# --- Enums ---

class Verdict(str, enum.Enum):
    FEASIBLE = "FEASIBLE"
    PLAUSIBLE = "PLAUSIBLE"
    IMPLAUSIBLE = "IMPLAUSIBLE"
    IMPOSSIBLE = "IMPOSSIBLE"


class PhysicsDomain(str, enum.Enum):
    GENERAL = "General"
    STRUCTURAL_INTEGRITY = "Structural Integrity"
    THERMODYNAMICS = "Thermodynamics"
    AERODYNAMICS = "Aerodynamics"
    ELECTROMAGNETISM = "Electromagnetism"
    FLUID_DYNAMICS = "Fluid Dynamics"
    QUANTUM_MECHANICS = "Quantum Mechanics"
    RELATIVISTIC_PHYSICS = "Relativistic Physics"
    ACOUSTICS = "Acoustics"
    OPTICS = "Optics"
    CHEMICAL_KINETICS = "Chemical Kinetics"
    BIOMECHANICS = "Biomechanics"
    ASTROPHYSICS = "Astrophysics"
    GEOPHYSICS = "Geophysics"
    MATERIAL_SCIENCE = "Material Science"
    NUCLEAR_PHYSICS = "Nuclear Physics"
    PLASMA_PHYSICS = "Plasma Physics"
    CYBERNETICS = "Cybernetics"
    CONTROL_THEORY = "Control Theory"
    ORBITAL_MECHANICS = "Orbital Mechanics"
    NANOTECHNOLOGY = "Nanotechnology"
    CRYOGENICS = "Cryogenics"
    HIGH_ENERGY_PHYSICS = "High Energy Physics"
    METEOROLOGY = "Meteorology"
    HYDRODYNAMICS = "Hydrodynamics"


class ManufacturabilityRating(str, enum.Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    NONE = "None"


class FailureProbability(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CERTAIN = "Certain"


class FailureImpact(str, enum.Enum):
    MINOR = "Minor"
    MAJOR = "Major"
    CATASTROPHIC = "Catastrophic"


class PrimitiveType(str, enum.Enum):
    BOX = "box"
    CYLINDER = "cylinder"
    SPHERE = "sphere"
    CONE = "cone"
    CAPSULE = "capsule"


# --- Wire models (camelCase on the wire, snake_case in Python) ---

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PhysicalProperties(CamelModel):
    width: float = Field(gt=0)   # metres
    height: float = Field(gt=0)
    depth: float = Field(gt=0)
    material: str

    @property
    def volume(self) -> float:
        return self.width * self.height * self.depth


class EnvironmentalConditions(CamelModel):
    temperature: float  # Celsius
    pressure: float     # atmospheres
    gravity: float      # m/s^2 (Earth = 9.81)
    humidity: float     # percent
    wind_speed: float   # m/s
    atmosphere: str     # e.g. "Earth Standard", "Mars CO2", "Vacuum"


class _DescribedRequest(CamelModel):
    description: str

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("description must not be blank")
        return v


class AnalysisRequest(_DescribedRequest):
    domain: PhysicsDomain = PhysicsDomain.GENERAL
    physical_properties: Optional[PhysicalProperties] = None
    environment: Optional[EnvironmentalConditions] = None


class BlueprintRequest(_DescribedRequest):
    pass


class Scores(CamelModel):
    physics: float
    engineering: float
    economics: float
    safety: float


class Manufacturability(CamelModel):
    rating: ManufacturabilityRating
    assessment: str


class FailureMode(CamelModel):
    scenario: str
    probability: FailureProbability
    impact: FailureImpact
    mitigation: Optional[str] = None


class AnalysisResult(CamelModel):
    summary: str
    risk_score: float
    verdict: Verdict
    domain: PhysicsDomain = PhysicsDomain.GENERAL
    scores: Scores
    component_breakdown: List[str]
    applied_physics_laws: List[str]
    key_calculations: List[str]
    manufacturability: Manufacturability
    violated_constraints: List[str]
    failure_modes: List[FailureMode] = []
    optimizations: List[str]
    reasoning: str


class BlueprintPart(CamelModel):
    id: str
    type: PrimitiveType
    position: Tuple[float, float, float]
    rotation: Tuple[float, float, float]  # Euler angles, radians
    scale: Tuple[float, float, float]
    color: str
    name: str


class BlueprintResponse(CamelModel):
    parts: List[BlueprintPart]
    count: int
