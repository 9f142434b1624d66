"""Database models for VolunteerVerse"""

from volunteerverse.models.profile import PROFILE_MODELS, Organizer, Volunteer

__all__ = [
    "Volunteer",
    "Organizer",
    "PROFILE_MODELS",
]
