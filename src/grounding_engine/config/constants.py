"""Fixed vocabularies shared across retrieval, detection and correction."""

from __future__ import annotations

# Collection names
FACTS = "facts"
KNOWLEDGE = "roger_knowledge"
USER_MESSAGES = "user_messages"
ASSISTANT_RESPONSES = "assistant_responses"

GROUNDING_COLLECTIONS = (FACTS, KNOWLEDGE)

IMPORTANCE_LEVELS = {
    "critical": 1.0,
    "high": 0.8,
    "medium": 0.6,
    "low": 0.4,
}
DEFAULT_IMPORTANCE = 0.5

STOPWORDS = frozenset(
    {
        "a", "about", "above", "after", "again", "against", "all", "am", "an",
        "and", "any", "are", "as", "at", "be", "because", "been", "before",
        "being", "below", "between", "both", "but", "by", "can", "could", "did",
        "do", "does", "doing", "down", "during", "each", "few", "for", "from",
        "further", "had", "has", "have", "having", "he", "her", "here", "hers",
        "herself", "him", "himself", "his", "how", "i", "if", "in", "into", "is",
        "it", "its", "itself", "just", "me", "more", "most", "my", "myself", "no",
        "nor", "not", "now", "of", "off", "on", "once", "only", "or", "other",
        "our", "ours", "ourselves", "out", "over", "own", "same", "she", "should",
        "so", "some", "such", "than", "that", "the", "their", "theirs", "them",
        "themselves", "then", "there", "these", "they", "this", "those",
        "through", "to", "too", "under", "until", "up", "very", "was", "we",
        "were", "what", "when", "where", "which", "while", "who", "whom", "why",
        "will", "with", "would", "you", "your", "yours", "yourself",
        "yourselves", "really", "feel", "like", "know", "think", "want", "get",
        "got", "much", "many", "also", "still", "even",
    }
)

MENTAL_HEALTH_SYNONYMS: dict[str, list[str]] = {
    "sad": ["depressed", "unhappy", "melancholy", "down"],
    "depressed": ["sad", "hopeless", "despondent", "miserable"],
    "depression": ["sadness", "hopelessness", "low mood"],
    "anxiety": ["worry", "nervousness", "fear", "stress"],
    "anxious": ["worried", "nervous", "uneasy", "tense"],
    "stressed": ["pressured", "tense", "overwhelmed", "strained"],
    "angry": ["upset", "irritated", "frustrated", "furious"],
    "trauma": ["ptsd", "traumatic experience", "distressing event"],
    "therapy": ["counseling", "treatment", "psychotherapy"],
    "suicidal": ["self-harm", "wanting to die", "suicide"],
    "addiction": ["substance abuse", "dependency", "substance use"],
    "alcohol": ["drinking", "alcoholism", "liquor"],
    "drug": ["substance", "medication", "pill"],
    "relationship": ["marriage", "partnership", "dating"],
    "lonely": ["isolated", "alone", "disconnected"],
    "sleep": ["insomnia", "rest", "tiredness"],
}

# Fixed resource-bearing replies used when a safety-critical flag fires.
SUICIDE_SAFETY_MESSAGE = (
    "I'm concerned about what you've shared regarding thoughts of suicide or self-harm. "
    "This is something to take seriously. The 988 Suicide & Crisis Lifeline is available "
    "24/7 by calling or texting 988, or at 1-800-273-8255. If you are in immediate danger, "
    "please call 911 or go to your nearest emergency room. Would it help to talk about what "
    "you're going through right now?"
)

EATING_DISORDER_SAFETY_MESSAGE = (
    "Thank you for sharing your struggles with disordered eating. These are serious concerns "
    "that deserve proper support. The National Eating Disorders Association (NEDA) has "
    "resources that might help. Would you like to talk more about what you're experiencing?"
)

SUBSTANCE_SAFETY_MESSAGE = (
    "I hear your concerns about substance use. The SAMHSA National Helpline at "
    "1-800-662-4357 provides free, confidential information and treatment referrals. "
    "Would you like to talk about what's been going on with your drinking or substance use?"
)
