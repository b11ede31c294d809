"""Static catalog of story levels: title, scene tag and mechanic per level."""

from dataclasses import dataclass

from kamjai.domain.minigame.models import MechanicType


@dataclass(frozen=True)
class LevelSpec:
    level_id: int
    title: str
    scene: str
    mechanic: MechanicType


_RAW_LEVELS: list[tuple[str, str, MechanicType]] = [
    ("Passport Panic", "airport_arrival", MechanicType.SORT_MATCH),
    ("TukTuk Run: Monitor Lizard Escape", "tuktuk_run", MechanicType.RUNNER),
    ("Spice Survivor", "street_food_stall", MechanicType.CRAFT_SEQUENCE),
    ("Seven Shift", "seven_counter", MechanicType.DIALOGUE_TILES),
    ("Lobby Logic", "hotel_lobby", MechanicType.DIALOGUE_TILES),
    ("Sweetness Chaos", "coffee_shop", MechanicType.CRAFT_SEQUENCE),
    ("WiFi Wars", "cowork_wifi", MechanicType.RHYTHM),
    ("Try & Buy", "weekend_market", MechanicType.SORT_MATCH),
    ("Pressure Balance", "yoga_studio", MechanicType.RHYTHM),
    ("Bill Breaker", "rooftop_bar", MechanicType.RHYTHM),
    ("Wash Quest", "laundry_shop", MechanicType.SORT_MATCH),
    ("Symptom Match", "pharmacy", MechanicType.SORT_MATCH),
    ("Style Matcher", "hair_salon", MechanicType.DIALOGUE_TILES),
    ("Fitness Flow", "gym_floor", MechanicType.RHYTHM),
    ("Form Frenzy", "bank_forms", MechanicType.CRAFT_SEQUENCE),
    ("Answer Confidence", "job_interview", MechanicType.DIALOGUE_TILES),
    ("Proposal Stack", "meeting_room", MechanicType.CRAFT_SEQUENCE),
    ("Table Manners", "client_dinner", MechanicType.DIALOGUE_TILES),
    ("Signal Panic", "phone_call", MechanicType.RHYTHM),
    ("Inbox Attack", "email_messages", MechanicType.RUNNER),
    ("Platform Puzzle", "train_station", MechanicType.SORT_MATCH),
    ("Safety Surf", "beach_resort", MechanicType.RUNNER),
    ("Ranger Sort", "national_park", MechanicType.SORT_MATCH),
    ("Bargain Battle", "night_market", MechanicType.DIALOGUE_TILES),
    ("Reef Explorer", "island_hopping", MechanicType.RUNNER),
    ("Merit Flow", "temple_visit", MechanicType.DIALOGUE_TILES),
    ("Wok Master", "thai_cooking_class", MechanicType.CRAFT_SEQUENCE),
    ("Muay Combo", "muay_thai_gym", MechanicType.RHYTHM),
    ("Festival Flow", "local_festival", MechanicType.RHYTHM),
    ("Social Links", "making_thai_friends", MechanicType.DIALOGUE_TILES),
]

LEVEL_CATALOG: dict[int, LevelSpec] = {
    level_id: LevelSpec(level_id, title, scene, mechanic)
    for level_id, (title, scene, mechanic) in enumerate(_RAW_LEVELS, start=1)
}


def get_level_spec(level_id: int) -> LevelSpec | None:
    return LEVEL_CATALOG.get(level_id)


def parse_mechanic(value: str | None) -> MechanicType | None:
    """Map a free-form mechanic tag onto the enum; unknown tags give None."""
    if not value:
        return None
    try:
        return MechanicType(value.strip().lower())
    except ValueError:
        return None
