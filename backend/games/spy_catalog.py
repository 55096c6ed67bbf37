"""
Static content for "Who is the spy": locations with per-language role labels,
plus the per-language UI text catalog pushed to displays and controllers.

Role lists are index-aligned across languages so a round can be re-rendered in
another language without re-dealing roles.
"""
from typing import Dict, List

from models.games import Location

DEFAULT_LANGUAGE = "en"
SUPPORTED_LANGUAGES = ("en", "ar")


LOCATIONS: List[Location] = [
    Location(
        name={"en": "Airport", "ar": "المطار"},
        roles={
            "en": ["Pilot", "Flight Attendant", "Passenger", "Security Officer", "Air Traffic Controller", "Baggage Handler"],
            "ar": ["طيار", "مضيف طيران", "مسافر", "ضابط أمن", "مراقب جوي", "عامل أمتعة"],
        },
    ),
    Location(
        name={"en": "Hospital", "ar": "المستشفى"},
        roles={
            "en": ["Doctor", "Nurse", "Patient", "Surgeon", "Receptionist", "Paramedic"],
            "ar": ["طبيب", "ممرض", "مريض", "جراح", "موظف استقبال", "مسعف"],
        },
    ),
    Location(
        name={"en": "School", "ar": "المدرسة"},
        roles={
            "en": ["Teacher", "Student", "Principal", "Janitor", "Librarian", "Coach"],
            "ar": ["معلم", "طالب", "مدير", "عامل نظافة", "أمين مكتبة", "مدرب"],
        },
    ),
    Location(
        name={"en": "Restaurant", "ar": "المطعم"},
        roles={
            "en": ["Chef", "Waiter", "Customer", "Cashier", "Dishwasher", "Food Critic"],
            "ar": ["طاهٍ", "نادل", "زبون", "أمين صندوق", "غاسل أطباق", "ناقد طعام"],
        },
    ),
    Location(
        name={"en": "Beach", "ar": "الشاطئ"},
        roles={
            "en": ["Lifeguard", "Surfer", "Ice Cream Seller", "Tourist", "Photographer", "Fisherman"],
            "ar": ["منقذ", "راكب أمواج", "بائع مثلجات", "سائح", "مصور", "صياد"],
        },
    ),
    Location(
        name={"en": "Movie Theater", "ar": "السينما"},
        roles={
            "en": ["Projectionist", "Ticket Seller", "Moviegoer", "Usher", "Popcorn Seller", "Film Critic"],
            "ar": ["مشغل العرض", "بائع تذاكر", "مشاهد", "مرشد المقاعد", "بائع فشار", "ناقد سينمائي"],
        },
    ),
    Location(
        name={"en": "Supermarket", "ar": "السوبرماركت"},
        roles={
            "en": ["Cashier", "Shopper", "Stock Clerk", "Butcher", "Manager", "Security Guard"],
            "ar": ["أمين صندوق", "متسوق", "عامل رفوف", "جزار", "مدير", "حارس أمن"],
        },
    ),
    Location(
        name={"en": "Space Station", "ar": "محطة الفضاء"},
        roles={
            "en": ["Commander", "Engineer", "Scientist", "Doctor", "Space Tourist", "Pilot"],
            "ar": ["قائد", "مهندس", "عالم", "طبيب", "سائح فضائي", "طيار"],
        },
    ),
]


UI_TEXT: Dict[str, Dict[str, str]] = {
    "room_code": {"en": "Room Code", "ar": "رمز الغرفة"},
    "players": {"en": "Players", "ar": "اللاعبون"},
    "start_game": {"en": "Start Game", "ar": "ابدأ اللعبة"},
    "waiting_for_players": {"en": "Waiting for players...", "ar": "في انتظار اللاعبين..."},
    "round_starting": {"en": "Check your role!", "ar": "تحقق من دورك!"},
    "spy_msg": {"en": "You are the SPY!", "ar": "أنت الجاسوس!"},
    "figure_out_location": {"en": "Figure out the location without getting caught.", "ar": "اكتشف المكان دون أن يكشفك أحد."},
    "you_are_safe": {"en": "You are NOT the spy", "ar": "أنت لست الجاسوس"},
    "civilian_msg": {"en": "Location", "ar": "المكان"},
    "role_msg": {"en": "Your role", "ar": "دورك"},
    "vote_now": {"en": "Vote Now", "ar": "صوّت الآن"},
    "voting": {"en": "Voting", "ar": "التصويت"},
    "who_is_spy": {"en": "Who is the spy?", "ar": "من هو الجاسوس؟"},
    "vote_for": {"en": "Vote for the player you suspect", "ar": "صوّت للاعب الذي تشك به"},
    "waiting_votes": {"en": "Waiting for votes...", "ar": "في انتظار الأصوات..."},
    "votes": {"en": "votes", "ar": "أصوات"},
    "spy_wins": {"en": "The spy wins!", "ar": "فاز الجاسوس!"},
    "civilians_win": {"en": "The civilians win!", "ar": "فاز المدنيون!"},
    "you_won": {"en": "You won!", "ar": "لقد فزت!"},
    "you_lost": {"en": "You lost!", "ar": "لقد خسرت!"},
    "the_spy_was": {"en": "The spy was", "ar": "الجاسوس كان"},
    "the_location_was": {"en": "The location was", "ar": "المكان كان"},
    "play_again": {"en": "Play Again", "ar": "العب مرة أخرى"},
    "back_to_lobby": {"en": "Back to Lobby", "ar": "العودة إلى الردهة"},
}


def get_ui_text(key: str, language: str = DEFAULT_LANGUAGE) -> str:
    translations = UI_TEXT.get(key)
    if not translations:
        return key
    return translations.get(language) or translations.get(DEFAULT_LANGUAGE) or key


def get_all_ui_text(language: str = DEFAULT_LANGUAGE) -> Dict[str, str]:
    return {key: get_ui_text(key, language) for key in UI_TEXT}


def location_name(location: Location, language: str) -> str:
    return location.name.get(language) or location.name[DEFAULT_LANGUAGE]


def location_roles(location: Location, language: str) -> List[str]:
    return location.roles.get(language) or location.roles[DEFAULT_LANGUAGE]
