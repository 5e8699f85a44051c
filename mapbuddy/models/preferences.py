"""User preference profile consumed by the matchers."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

NO_PROFILE_MARKER = "No user profile available."

INTEREST_LABELS = {
    "music": "Music",
    "food": "Food & Dining",
    "art": "Art & Culture",
    "tech": "Technology",
    "fitness": "Fitness & Sports",
    "travel": "Travel & Adventure",
    "photography": "Photography",
    "reading": "Reading & Literature",
    "coffee": "Coffee & Cafes",
    "social": "Social Events",
}


class Budget(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    ANY = "any"


class TimeOfDay(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    ANY = "any"


class GroupSize(str, Enum):
    SOLO = "solo"
    COUPLE = "couple"
    SMALL_GROUP = "small-group"
    LARGE_GROUP = "large-group"
    ANY = "any"


class ActivityLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    ANY = "any"


class UserPreferences(BaseModel):
    """Profile filled in during onboarding.

    Stored as a flat JSON record using the camelCase keys of the web client,
    so every field has a default and unknown keys are ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = ""
    age: str = ""
    location: str = ""
    interests: list[str] = Field(default_factory=list)
    budget: Budget = Budget.ANY
    preferred_time: TimeOfDay = Field(default=TimeOfDay.ANY, alias="preferredTime")
    group_size: GroupSize = Field(default=GroupSize.ANY, alias="groupSize")
    activity_level: ActivityLevel = Field(default=ActivityLevel.ANY, alias="activityLevel")
    languages: list[str] = Field(default_factory=list)
    dietary_restrictions: list[str] = Field(default_factory=list, alias="dietaryRestrictions")
    accessibility: list[str] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        """A profile counts once it has a name and at least one interest."""
        return bool(self.name) and len(self.interests) > 0

    def interest_labels(self) -> list[str]:
        return [INTEREST_LABELS.get(interest, interest) for interest in self.interests]


def render_preferences(preferences: UserPreferences | None) -> str:
    """Project a profile into the text block embedded in reasoning prompts."""
    if preferences is None:
        return NO_PROFILE_MARKER

    languages = ", ".join(preferences.languages) if preferences.languages else "Not specified"
    lines = [
        "User Profile:",
        f"- Name: {preferences.name}",
        f"- Age: {preferences.age}",
        f"- Location: {preferences.location}",
        f"- Interests: {', '.join(preferences.interest_labels())}",
        f"- Budget: {preferences.budget.value}",
        f"- Preferred Time: {preferences.preferred_time.value}",
        f"- Group Size: {preferences.group_size.value}",
        f"- Languages: {languages}",
    ]
    return "\n".join(lines)
