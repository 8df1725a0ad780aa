"""Emotion attribution checks: does the reply reflect the feeling the user expressed?"""

from __future__ import annotations

import re

DEPRESSION_INPUT_RE = re.compile(r"\b(depress(?:ed|ing|ion)?|hopeless|worthless)\b", re.I)
DEPRESSION_INDICATOR_RE = re.compile(
    r"\b(depress(?:ed|ing|ion)?|sad|down|low|hopeless|worthless|empty|numb|"
    r"feeling (?:bad|low|terrible|awful|horrible))\b",
    re.I,
)
DEPRESSION_ACKNOWLEDGED_RE = re.compile(
    r"\b(depress(?:ed|ing|ion)?|feeling down|difficult time|hard time|challenging|struggl\w*)\b", re.I
)
CLAIMS_NEUTRAL_RE = re.compile(r"you'?re feeling neutral|you seem neutral|neutral tone", re.I)
CLAIMS_NEUTRAL_OR_POSITIVE_RE = re.compile(
    r"you'?re feeling (neutral|fine|good|okay|alright|well)\b", re.I
)
CLAIMS_NEGATIVE_RE = re.compile(r"you'?re feeling (sad|upset|down|depressed|anxious|worried)\b", re.I)
NEGATIVE_INPUT_RE = re.compile(
    r"\b(depress(?:ed|ing|ion)?|sad|upset|down|hurt|angry|anxious|stressed|worried|hopeless|"
    r"worthless|empty|numb|feeling (?:bad|low|terrible|awful|horrible))\b",
    re.I,
)
POSITIVE_INPUT_RE = re.compile(
    r"\b(happy|excited|great|good|wonderful|amazing|fantastic|joyful|pleased|delighted|thrilled)\b",
    re.I,
)
TEMPORAL_EMOTION_RE = re.compile(
    r"\b(terrible|awful|horrible|rough|bad|tough) (day|night|week|morning|evening)\b", re.I
)
TEMPORAL_ACKNOWLEDGED_RE = re.compile(
    r"difficult|challenging|\bhard\b|tough|sorry to hear|rough", re.I
)

_STATED_EMOTION_RES = (
    re.compile(r"\bI'?m feeling (\w+)", re.I),
    re.compile(r"\bI feel (\w+)", re.I),
    re.compile(r"\bI'?m (\w+)", re.I),
    re.compile(r"\bI am (\w+)", re.I),
)

# Words that count as a stated emotion when they follow "I'm" or "I feel".
EMOTION_WORDS = frozenset(
    {
        "sad", "happy", "angry", "anxious", "depressed", "worried", "scared",
        "afraid", "lonely", "stressed", "overwhelmed", "frustrated", "upset",
        "hopeless", "excited", "nervous", "hurt", "numb", "empty", "tired",
        "exhausted", "ashamed", "guilty", "jealous", "grateful", "relieved",
        "confused", "lost", "miserable", "furious", "terrified", "heartbroken",
    }
)

_POLARITY_CLAIM_RE = re.compile(
    r"\byou(?:'re| are| seem| sound| look| feel| must be| might be)(?: feeling)? (\w+)", re.I
)
POSITIVE_EMOTIONS = frozenset(
    {"happy", "excited", "great", "good", "joyful", "calm", "content", "relieved", "hopeful", "cheerful"}
)
NEGATIVE_EMOTIONS = frozenset(
    {"sad", "upset", "down", "depressed", "anxious", "worried", "angry", "hopeless", "miserable", "scared"}
)


def mentions_depression(user_input: str) -> bool:
    return bool(DEPRESSION_INPUT_RE.search(user_input))


def depression_ignored(reply: str, user_input: str) -> bool:
    """The user said they are depressed and the reply calls them neutral or never acknowledges it."""
    if not mentions_depression(user_input):
        return False
    return bool(CLAIMS_NEUTRAL_RE.search(reply)) or not DEPRESSION_ACKNOWLEDGED_RE.search(reply)


def stated_emotion(user_input: str) -> str | None:
    """First emotion word the user states about themselves, e.g. "I'm feeling lonely"."""
    for pattern in _STATED_EMOTION_RES:
        for match in pattern.finditer(user_input):
            word = match.group(1).lower()
            if word in EMOTION_WORDS:
                return word
    return None


def acknowledges(reply: str, emotion: str) -> bool:
    escaped = re.escape(emotion)
    return bool(
        re.search(rf"feeling {escaped}|you'?re {escaped}|you are {escaped}|you feel {escaped}|\b{escaped}\b", reply, re.I)
    )


def emotion_misidentified(reply: str, user_input: str) -> bool:
    """The reply attributes an emotion that conflicts with what the user expressed."""
    if DEPRESSION_INDICATOR_RE.search(user_input):
        if CLAIMS_NEUTRAL_OR_POSITIVE_RE.search(reply):
            return True

    has_negative = bool(NEGATIVE_INPUT_RE.search(user_input))
    has_positive = bool(POSITIVE_INPUT_RE.search(user_input))

    if CLAIMS_NEUTRAL_RE.search(reply) and has_negative:
        return True
    if CLAIMS_NEGATIVE_RE.search(reply) and has_positive and not has_negative:
        return True

    emotion = stated_emotion(user_input)
    if emotion and not acknowledges(reply, emotion):
        return True

    if TEMPORAL_EMOTION_RE.search(user_input) and not TEMPORAL_ACKNOWLEDGED_RE.search(reply):
        return True
    return False


def opposite_polarity_claims(reply: str) -> tuple[str, str] | None:
    """A positive and a negative emotion both attributed to the user in one reply."""
    positive = negative = None
    for match in _POLARITY_CLAIM_RE.finditer(reply):
        word = match.group(1).lower()
        if word in POSITIVE_EMOTIONS and positive is None:
            positive = word
        elif word in NEGATIVE_EMOTIONS and negative is None:
            negative = word
    if positive and negative:
        return positive, negative
    return None
