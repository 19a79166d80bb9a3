"""
Help desk chat for citizens.
Keyword intent matching with canned Taglish replies; sessions live in memory.
"""

import uuid
import random
import logging
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field
from datetime import datetime

from ..errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

GREETINGS = [
    "Mabuhay po! 👋 Ako po ang Muntinlupa AI Assistant ni Congressman Jaime R. Fresnedi. "
    "Paano ko po kayo matutulungan ngayon?",
    "Kumusta po! Welcome po sa Muntinlupa District Office digital services. Ano pong maitutulong ko sa inyo?",
    "Magandang araw po! Nandito po ako para tulungan kayo sa inyong mga kailangan sa distrito.",
]

GRATITUDE = [
    "Walang anuman po! Kung may iba pa po kayong katanungan, nandito lang po ako para tumulong.",
    "Salamat din po! Always happy to serve Muntinlupa constituents.",
    "My pleasure po! Para po yan sa ating mga kababayan sa Muntinlupa.",
]

# Checked in order; the first intent with a matching keyword wins
INTENT_KEYWORDS = [
    ("greeting", ["hi", "hello", "hey", "kumusta", "magandang", "mabuhay", "good"]),
    ("appointment", ["appointment", "book", "schedule", "meeting", "set", "puntahan", "punta", "consult", "konsulta"]),
    ("laws", ["law", "legal", "batas", "bill", "ordinance", "policy", "patakaran", "regulasyon"]),
    ("services", ["service", "project", "program", "help", "tulong", "serbisyo", "benefits", "benepisyo", "assistance"]),
    ("contact", ["contact", "number", "email", "location", "address", "tawag", "tawagan", "social media", "fb", "facebook"]),
    ("thanks", ["thank", "salamat", "maraming", "appreciate"]),
]

APPOINTMENT_REPLY = "\n".join([
    "Para po sa appointment booking, narito po ang mga options:",
    "• Piliin po ang uri ng consultation (personal, online, o phone)",
    "• Pumili po ng preferred date at oras (Lunes hanggang Biyernes, 8AM-5PM)",
    "• Magbigay po ng maikling description ng inyong concern",
    "Gusto niyo po bang gabayan ko kayo sa booking process? "
    "Pwede rin po kayong mag-email sa appointment@fresnedi.gov.ph",
])

LAWS_REPLY = "\n".join([
    "Ang aming legal resources ay sumasakop sa:",
    "• Mga bagong ordinansa (2023-2024)",
    "• Pending bills sa city council",
    "• Public service guidelines",
    "• Community development programs",
    "Para sa pinaka-up-to-date na impormasyon, maaari pong bisitahin ang opisina ni Cong. Fresnedi "
    "sa 3rd Floor ng Alabang Public Market.",
])

SERVICES_REPLY = "\n".join([
    "Ang aming mga serbisyo po para sa Muntinlupa constituents:",
    "• Educational Assistance Program (EAP)",
    "• Medical and Burial Assistance",
    "• Tulong Pangkabuhayan sa Ating Disadvantaged/Displaced Workers (TUPAD)",
    "• Libreng Sakay Program para sa Senior Citizens at PWDs",
    "Ano pong serbisyo ang gusto ninyong malaman? Pwede ko pong ipaliwanag ang details.",
])

CONTACT_REPLY = "\n".join([
    "Maaari niyo pong i-contact ang District Office ni Cong. Fresnedi:",
    "\n📞 Telepono:",
    "• Main Office: (02) 8123-4567",
    "• Tulong Bayan Hotline: 0917-123-4567",
    "\n📧 Email:",
    "• General Inquiries: office@fresnedi.gov.ph",
    "• Constituent Concerns: constituents@fresnedi.gov.ph",
    "\n🕒 Oras ng Opisina: Lunes hanggang Biyernes, 8:00 AM - 5:00 PM (Walang lunch break)",
    "\n📍 Mga Lokasyon:",
    "• Main Office: 3rd Floor, Alabang Public Market, Muntinlupa City",
    "• Satellite Office: 123 Muntinlupa Boulevard, Brgy. Putatan",
    "\n🌐 Social Media:",
    "• Facebook: @JaimeFresnediOfficial",
    "• Twitter: @JRFresnedi",
])

DEFAULT_REPLY = (
    "Pasensya na po, hindi ko masyadong naintindihan. Pwede po ba ninyong ulitin o dagdagan ang details? "
    "Nandito po ako para tumulong sa mga appointments, batas, serbisyo, at contact information "
    "ng opisina ni Cong. Fresnedi."
)


def detect_intent(text: str) -> str:
    lowered = text.lower()
    for intent, keywords in INTENT_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return intent
    return "default"


def generate_response(text: str) -> str:
    intent = detect_intent(text)
    if intent == "greeting":
        return random.choice(GREETINGS)
    if intent == "thanks":
        return random.choice(GRATITUDE)
    return {
        "appointment": APPOINTMENT_REPLY,
        "laws": LAWS_REPLY,
        "services": SERVICES_REPLY,
        "contact": CONTACT_REPLY,
    }.get(intent, DEFAULT_REPLY)


@dataclass
class HelpMessage:
    id: str
    sender: str  # 'user' or 'bot'
    text: str
    timestamp: datetime
    intent: Optional[str] = None


@dataclass
class HelpSession:
    session_id: str
    messages: List[HelpMessage] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


class HelpChatService:
    """In-memory help chat sessions."""

    def __init__(self):
        self.sessions: Dict[str, HelpSession] = {}

    def _add_message(self, session: HelpSession, sender: str, text: str,
                     intent: Optional[str] = None) -> HelpMessage:
        message = HelpMessage(id=str(uuid.uuid4()), sender=sender, text=text,
                              timestamp=datetime.utcnow(), intent=intent)
        session.messages.append(message)
        session.updated_at = message.timestamp
        return message

    def create_session(self) -> str:
        session_id = str(uuid.uuid4())
        session = HelpSession(session_id=session_id)
        self.sessions[session_id] = session
        self._add_message(session, "bot", GREETINGS[0], "greeting")
        return session_id

    def _session(self, session_id: str) -> HelpSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFoundError("Chat session not found")
        return session

    def send_message(self, session_id: str, text: str) -> Dict[str, Any]:
        session = self._session(session_id)
        if not (text or "").strip():
            raise ValidationError("Message is empty")

        self._add_message(session, "user", text)
        intent = detect_intent(text)
        reply = self._add_message(session, "bot", generate_response(text), intent)
        logger.debug(f"Help chat {session_id}: intent {intent}")
        return {"session_id": session_id, "intent": intent, "reply": reply.text}

    def get_history(self, session_id: str) -> List[Dict[str, Any]]:
        return [
            {"id": m.id, "sender": m.sender, "text": m.text, "timestamp": m.timestamp.isoformat()}
            for m in self._session(session_id).messages
        ]

    def end_session(self, session_id: str) -> None:
        self.sessions.pop(session_id, None)


# Global service instance
_help_chat_service = None


def get_help_chat_service() -> HelpChatService:
    global _help_chat_service
    if _help_chat_service is None:
        _help_chat_service = HelpChatService()
    return _help_chat_service
