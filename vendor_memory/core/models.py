"""Core data models for the conversational memory engine"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from vendor_memory.core.clock import to_local_naive

# Naive local time; aware inputs are converted
Timestamp = Annotated[datetime, AfterValidator(to_local_naive)]


class CamelModel(BaseModel):
    """
    Base for every record the engine keeps.

    Attributes are snake_case in Python; dumps with ``by_alias=True`` produce
    the camelCase JSON shape that rule field paths and persisted records use.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


class EmotionType(str, Enum):
    """Primary emotions recognised by the analyzer"""

    JOY = "joy"
    EXCITEMENT = "excitement"
    SATISFACTION = "satisfaction"
    CURIOSITY = "curiosity"
    INTEREST = "interest"
    FRUSTRATION = "frustration"
    CONFUSION = "confusion"
    DISAPPOINTMENT = "disappointment"
    ANXIETY = "anxiety"
    IMPATIENCE = "impatience"
    NEUTRAL = "neutral"
    CONTEMPLATIVE = "contemplative"
    DECISIVE = "decisive"
    HESITANT = "hesitant"
    OVERWHELMED = "overwhelmed"


class InteractionType(str, Enum):
    """Kinds of user interaction recorded in short-term memory"""

    QUERY = "query"
    CLICK = "click"
    PURCHASE = "purchase"
    ABANDON = "abandon"
    FEEDBACK = "feedback"
    MESSAGE = "message"
    PURCHASE_INTENT = "purchase_intent"
    PRICE_INQUIRY = "price_inquiry"
    COMPARISON = "comparison"


class ContextType(str, Enum):
    """What a context frame is about"""

    PRODUCT = "product"
    CATEGORY = "category"
    COMPARISON = "comparison"
    PROBLEM = "problem"
    GOAL = "goal"


class ConditionOperator(str, Enum):
    """Comparison operators for follow-up conditions"""

    EQUALS = "equals"
    CONTAINS = "contains"
    GREATER = "greater"
    LESS = "less"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"


# ========== EMOTION ==========

class EmotionalState(CamelModel):
    """Classified emotional reading of a single message"""

    primary: EmotionType
    intensity: float = Field(ge=0.0, le=1.0)
    confidence: float = Field(ge=0.0, le=1.0)
    triggers: list[str] = Field(default_factory=list)
    context: str = "general conversation"


# ========== INTERACTIONS ==========

class InteractionRecord(CamelModel):
    """One user action as seen by the assistant"""

    timestamp: Timestamp = Field(default_factory=datetime.now)
    type: InteractionType
    content: str = ""
    context: Any = None
    outcome: Optional[str] = None
    sentiment: Optional[EmotionalState] = None
    id: Optional[str] = None
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class PurchaseRecord(CamelModel):
    product_id: str
    category: str = ""
    price: float = 0.0
    timestamp: Timestamp = Field(default_factory=datetime.now)
    satisfaction: Optional[float] = None
    context: str = ""


# ========== USER PROFILE ==========

class PersonalityTraits(CamelModel):
    """Big-five traits, neutral at 0.5"""

    openness: float = Field(default=0.5, ge=0.0, le=1.0)
    conscientiousness: float = Field(default=0.5, ge=0.0, le=1.0)
    extraversion: float = Field(default=0.5, ge=0.0, le=1.0)
    agreeableness: float = Field(default=0.5, ge=0.0, le=1.0)
    neuroticism: float = Field(default=0.5, ge=0.0, le=1.0)


class CommunicationStyle(CamelModel):
    formality: Literal["casual", "formal", "mixed"] = "casual"
    verbosity: Literal["concise", "detailed", "adaptive"] = "adaptive"
    emotional_expression: Literal["high", "medium", "low"] = "medium"
    questioning_style: Literal["direct", "exploratory", "consultative"] = "exploratory"


class DecisionStyle(CamelModel):
    speed: Literal["impulsive", "quick", "deliberate", "analytical"] = "deliberate"
    risk_tolerance: Literal["high", "medium", "low"] = "medium"
    information_need: Literal["minimal", "moderate", "comprehensive"] = "moderate"
    social_influence: Literal["high", "medium", "low"] = "medium"


class Demographics(CamelModel):
    language: str = "pt-BR"
    age_range: Optional[str] = None
    location: Optional[str] = None


class Psychographics(CamelModel):
    personality: PersonalityTraits = Field(default_factory=PersonalityTraits)
    communication_style: CommunicationStyle = Field(default_factory=CommunicationStyle)
    decision_making_style: DecisionStyle = Field(default_factory=DecisionStyle)


class ResponsePattern(CamelModel):
    trigger: str
    response: str
    effectiveness: float = 0.0
    frequency: int = 0
    last_used: Timestamp = Field(default_factory=datetime.now)


class Engagement(CamelModel):
    total_sessions: int = 1
    average_session_duration: float = 0.0  # minutes
    preferred_channels: list[str] = Field(default_factory=lambda: ["chat"])
    response_patterns: list[ResponsePattern] = Field(default_factory=list)
    total_purchases: int = 0


class UserProfile(CamelModel):
    id: str
    demographics: Demographics = Field(default_factory=Demographics)
    psychographics: Psychographics = Field(default_factory=Psychographics)
    engagement: Engagement = Field(default_factory=Engagement)


class PriceRange(CamelModel):
    min: float = 0.0
    max: float = 10000.0
    flexibility: float = Field(default=0.3, ge=0.0, le=1.0)


class UserPreferences(CamelModel):
    categories: list[str] = Field(default_factory=list)
    brands: list[str] = Field(default_factory=list)
    price_range: PriceRange = Field(default_factory=PriceRange)
    features: dict[str, float] = Field(default_factory=dict)
    deal_breakers: list[str] = Field(default_factory=list)
    must_haves: list[str] = Field(default_factory=list)


class BehaviorPattern(CamelModel):
    """Named recurring behaviour, reinforced each time it is detected"""

    pattern: str
    frequency: int = 1
    context: list[str] = Field(default_factory=list)
    outcomes: list[str] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    last_observed: Timestamp = Field(default_factory=datetime.now)


# ========== CONVERSATION MEMORY ==========

class ShortTermMemory(CamelModel):
    current_context: str = ""
    recent_products: list[str] = Field(default_factory=list)
    last_interactions: list[InteractionRecord] = Field(default_factory=list)
    session_goals: list[str] = Field(default_factory=list)


class LongTermMemory(CamelModel):
    user_profile: UserProfile
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    behavior_patterns: list[BehaviorPattern] = Field(default_factory=list)
    purchase_history: list[PurchaseRecord] = Field(default_factory=list)


class ConversationMemory(CamelModel):
    """
    Everything the assistant remembers about one user.

    Both lists in ``short_term`` are most-recent-first. This record is the
    natural unit of persistence: ``model_dump(by_alias=True, mode="json")``
    is plain JSON.
    """

    short_term: ShortTermMemory = Field(default_factory=ShortTermMemory)
    long_term: LongTermMemory
    updated_at: Timestamp = Field(default_factory=datetime.now)


# ========== CONTEXT STACK ==========

class ContextFrame(CamelModel):
    """Timestamped record of a topic under discussion"""

    id: str
    type: ContextType = ContextType.PRODUCT
    content: Any = None
    relevance: float = Field(default=1.0, ge=0.0, le=1.0)
    timestamp: Timestamp = Field(default_factory=datetime.now)
    expires_at: Optional[Timestamp] = None
    relationships: list[str] = Field(default_factory=list)


class ContextStack(CamelModel):
    contexts: list[ContextFrame] = Field(default_factory=list)
    max_size: int = 10
    current_focus: str = ""


class ConversationalContext(CamelModel):
    """Last successful search focus (product, brand, category)"""

    focus: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    last_query: Optional[str] = None
    last_models: list[str] = Field(default_factory=list)
    products_found: Optional[int] = None
    timestamp: Timestamp = Field(default_factory=datetime.now)


class UserState(CamelModel):
    """Per-user bundle held by a memory store"""

    memory: ConversationMemory
    context_stack: ContextStack = Field(default_factory=ContextStack)
    conversational_context: Optional[ConversationalContext] = None


# ========== INSIGHTS ==========

class ProactiveInsight(CamelModel):
    type: Literal["behavioral", "contextual", "temporal", "comparative"]
    insight: str
    message: str
    confidence: float = Field(ge=0.0, le=1.0)
    actionable: bool = True
    suggested_actions: list[str] = Field(default_factory=list)
    priority: int
    expires_at: Optional[Timestamp] = None


# ========== FOLLOW-UP RULES ==========

class FollowUpCondition(CamelModel):
    """Leaf test of a single field of the memory view"""

    field: str
    operator: ConditionOperator
    value: Any = None
    weight: float = Field(default=1.0, ge=0.0)


class ConditionGroup(CamelModel):
    """Nested AND/OR group of conditions"""

    operator: Literal["AND", "OR"] = "AND"
    conditions: list[Union[FollowUpCondition, "ConditionGroup"]] = Field(min_length=1)
    weight: float = Field(default=1.0, ge=0.0)


class FollowUpTrigger(CamelModel):
    conditions: list[Union[FollowUpCondition, ConditionGroup]] = Field(min_length=1)
    operator: Literal["AND", "OR"] = "AND"
    # When set, the trigger fires on weighted share of satisfied conditions
    threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class FollowUpTiming(CamelModel):
    """Delivery hints in minutes; not enforced by the engine"""

    delay: int = 0
    window: int = 60
    max_attempts: int = 1


class FollowUpMessage(CamelModel):
    template: str
    personalization: list[str] = Field(default_factory=list)


class FollowUpRule(CamelModel):
    id: str
    name: str
    trigger: FollowUpTrigger
    timing: FollowUpTiming = Field(default_factory=FollowUpTiming)
    message: FollowUpMessage
    priority: int = 5
    active: bool = True


ConditionGroup.model_rebuild()
