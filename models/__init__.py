from .account import Account, AccountCreate
from .verse import Verse, VerseCreate, VerseAdd, VerseBatchCreate, LearningPhase
from .collection import Collection, CollectionCreate, DripPeriod, DripSettings
from .profile import Profile, DailyReviewEntry, LevelUpState
from .review import Grade, ReviewScope, ReviewMode, InputMode, ReviewPreferences, ReviewSession

__all__ = [
    'Account', 'AccountCreate',
    'Verse', 'VerseCreate', 'VerseAdd', 'VerseBatchCreate', 'LearningPhase',
    'Collection', 'CollectionCreate', 'DripPeriod', 'DripSettings',
    'Profile', 'DailyReviewEntry', 'LevelUpState',
    'Grade', 'ReviewScope', 'ReviewMode', 'InputMode', 'ReviewPreferences', 'ReviewSession',
]
