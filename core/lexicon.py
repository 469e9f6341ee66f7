"""
Keyword tables used by the transfer classifier and the subscription detector.

All heuristics are plain data so they can be inspected and tested on their
own; the algorithms in classifier.py and recurrence.py only read them.
"""
import re
from typing import Dict, FrozenSet, Pattern, Tuple

# Category names (substring, lowercase) that mark an internal transfer
TRANSFER_CATEGORIES: Tuple[str, ...] = (
    "internal transfer",
    "transfer",
    "transfers",
    "between accounts",
    "account transfer",
    "bank transfer",
)

# Description phrases (substring, lowercase) that mark an internal transfer
TRANSFER_KEYWORDS: Tuple[str, ...] = (
    "transfer to",
    "transfer from",
    "transfer - ",
    "online transfer",
    "mobile transfer",
    "atm withdrawal",
    "atm deposit",
    "cash withdrawal",
    "cash deposit",
    "withdrawal - atm",
    "deposit - atm",
    "zelle transfer",
    "venmo transfer",
    "paypal transfer",
    "wire transfer",
    "ach transfer",
    "electronic transfer",
    "internal transfer",
    "between accounts",
    "move money",
    "fund transfer",
    "account transfer",
    "savings transfer",
    "checking transfer",
)

TRANSFER_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"atm\s*(withdrawal|deposit|cash|#)", re.IGNORECASE),
    re.compile(r"transfer.*(?:saving|checking|account)", re.IGNORECASE),
    re.compile(r"(?:saving|checking|account).*transfer", re.IGNORECASE),
)

# Well-known subscription brands (lowercase substring -> display brand).
# Longer keys are listed before their prefixes so the most specific wins.
BRAND_LEXICON: Dict[str, str] = {
    "netflix": "Netflix",
    "spotify": "Spotify",
    "apple music": "Apple Music",
    "youtube premium": "YouTube Premium",
    "youtube": "YouTube",
    "hulu": "Hulu",
    "disney+": "Disney+",
    "disney": "Disney",
    "hbo max": "HBO Max",
    "hbo": "HBO",
    "amazon prime": "Amazon Prime",
    "adobe": "Adobe",
    "office 365": "Office 365",
    "microsoft": "Microsoft",
    "dropbox": "Dropbox",
    "gmail": "Gmail",
    "google": "Google",
    "zoom": "Zoom",
    "slack": "Slack",
    "github": "GitHub",
    "linkedin": "LinkedIn",
    "twitter": "Twitter",
    "instagram": "Instagram",
    "facebook": "Facebook",
    "whatsapp": "WhatsApp",
    "telegram": "Telegram",
    "uber": "Uber",
    "lyft": "Lyft",
    "doordash": "DoorDash",
    "ubereats": "Uber Eats",
    "grubhub": "Grubhub",
    "instacart": "Instacart",
    "peloton": "Peloton",
    "planet fitness": "Planet Fitness",
    "fitness": "Fitness",
    "gym": "Gym",
    "starbucks": "Starbucks",
    "walmart": "Walmart",
    "target": "Target",
    "costco": "Costco",
    "sam's club": "Sam's Club",
}

# Merchants whose weekly cadence is an everyday habit, not a subscription
DAILY_PURCHASE_MERCHANTS: Tuple[str, ...] = (
    "meyers",
    "starbucks",
    "dunkin",
    "cafe",
    "coffee",
    "lunch",
    "canteen",
    "cafeteria",
)

FOOD_CATEGORIES: FrozenSet[str] = frozenset({"food & dining"})

# Category/subcategory markers (substring, lowercase) for food purchases
FOOD_MARKERS: Tuple[str, ...] = (
    "food",
    "dining",
    "coffee",
    "restaurant",
    "cafeteria",
)

# Boilerplate stripped from bank descriptions before comparing service names
SERVICE_PREFIX_PATTERN: Pattern = re.compile(
    r"^(?:RECURRING\s+|AUTO\s+|AUTOMATIC\s+|PAYMENT\s+TO\s+|PAY\s+)+", re.IGNORECASE
)
SERVICE_SUFFIX_PATTERN: Pattern = re.compile(
    r"(?:\s+(?:RECURRING|AUTO|AUTOMATIC|PAYMENT|PAY|BILL|SUBSCRIPTION|SUB))+$", re.IGNORECASE
)
# Reference numbers (6+ chars containing a digit) and slash dates
SERVICE_NOISE_PATTERN: Pattern = re.compile(
    r"\s+(?:#?(?=[A-Za-z0-9]*\d)[A-Za-z0-9]{6,}|\d{1,2}/\d{1,2}/\d{2,4})(?=\s|$)"
)
