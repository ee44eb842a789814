"""Business-context inference: industry, component purpose, user actions."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple

from ...models import ContextSource
from .base import AnalysisInput, AnalysisOutcome, make_fragment

EXPECTED_FIELDS = ["industryDomain", "primaryFunction", "userActions"]

INDUSTRY_KEYWORDS: Dict[str, List[str]] = {
    "fintech": ["bank", "finance", "payment", "wallet", "loan", "invest", "trading", "crypto"],
    "healthcare": ["health", "medical", "patient", "doctor", "clinic", "hospital", "wellness"],
    "ecommerce": ["shop", "store", "cart", "checkout", "product", "marketplace", "retail"],
    "saas": ["dashboard", "analytics", "workflow", "collaboration", "productivity", "tools"],
    "education": ["learn", "course", "student", "teacher", "education", "training", "academy"],
    "real-estate": ["property", "real estate", "listing", "apartment", "house", "rental"],
    "travel": ["hotel", "flight", "booking", "travel", "trip", "vacation", "destination"],
    "entertainment": ["game", "movie", "music", "streaming", "media", "entertainment"],
    "social": ["social", "community", "chat", "messaging", "networking", "dating"],
    "enterprise": ["enterprise", "corporate", "business", "crm", "erp", "hr"],
}

INDUSTRY_REGULATIONS: Dict[str, List[str]] = {
    "fintech": ["GDPR", "PCI DSS", "PSD2", "banking regulations"],
    "healthcare": ["HIPAA", "FDA guidelines", "medical device standards"],
    "ecommerce": ["GDPR", "CCPA", "consumer protection laws"],
    "education": ["FERPA", "COPPA", "accessibility standards"],
    "general": ["GDPR", "accessibility standards"],
}

INDUSTRY_BEST_PRACTICES: Dict[str, List[str]] = {
    "fintech": ["multi-factor authentication", "clear fee disclosure", "fraud prevention"],
    "healthcare": ["patient privacy", "medical accuracy", "accessibility compliance"],
    "ecommerce": ["secure checkout", "product reviews", "return policy clarity"],
    "education": ["inclusive design", "progress tracking", "parental controls"],
    "general": ["user privacy", "accessibility", "clear navigation"],
}

# Ordered: first match on the component/frame names wins
COMPONENT_FUNCTIONS: List[Tuple[str, str]] = [
    ("button", "user action trigger"),
    ("cta", "user action trigger"),
    ("form", "data capture"),
    ("input", "data capture"),
    ("login", "authentication"),
    ("signin", "authentication"),
    ("sign in", "authentication"),
    ("nav", "navigation"),
    ("menu", "navigation"),
    ("header", "navigation"),
    ("table", "data display"),
    ("tab", "navigation"),
    ("card", "content summary"),
    ("list", "content browsing"),
    ("chart", "data visualization"),
    ("modal", "focused interaction"),
    ("dialog", "focused interaction"),
    ("banner", "announcement"),
    ("hero", "marketing"),
    ("footer", "site information"),
]

CTA_PATTERNS: Dict[str, str] = {
    r"\bsign ?up\b|\bregister\b|\bcreate account\b": "sign up",
    r"\blog ?in\b|\bsign ?in\b": "log in",
    r"\bbuy\b|\bcheckout\b|\badd to cart\b|\bpurchase\b|\border\b": "purchase",
    r"\bsubscribe\b|\bupgrade\b|\bstart trial\b": "subscribe",
    r"\bsearch\b|\bfind\b": "search",
    r"\bsubmit\b|\bsend\b|\bsave\b": "submit",
    r"\bcontact\b|\bget in touch\b": "contact",
    r"\bshare\b|\binvite\b": "share",
    r"\bbook\b|\breserve\b": "book",
    r"\bdownload\b|\binstall\b": "download",
}


def detect_industry(text: str) -> Tuple[str, float, List[str]]:
    """Best industry for ``text``: (domain, confidence 0..1, matched keywords)."""
    lowered = text.lower()
    best, best_score, best_matches = "general", 0.0, []
    for industry, keywords in INDUSTRY_KEYWORDS.items():
        matches = [k for k in keywords if re.search(r"\b" + re.escape(k), lowered)]
        score = len(matches) / len(keywords)
        if score > best_score:
            best, best_score, best_matches = industry, score, matches
    return best, best_score, best_matches


def _primary_function(names: List[str]) -> Optional[str]:
    for name in names:
        lowered = name.lower()
        for keyword, function in COMPONENT_FUNCTIONS:
            if keyword in lowered:
                return function
    return None


def _user_actions(texts: List[str]) -> List[str]:
    found: List[str] = []
    for text in texts:
        lowered = text.lower()
        for pattern, action in CTA_PATTERNS.items():
            if action not in found and re.search(pattern, lowered):
                found.append(action)
    return found


def analyze_business(inp: AnalysisInput) -> AnalysisOutcome:
    ctx = inp.file_context
    texts = inp.index.texts()
    names = inp.index.names()

    # Selection names/copy count as weaker evidence than file and project names
    primary_text = " ".join(filter(None, [ctx.file_name, ctx.project_name, ctx.page_name]))
    secondary_text = " ".join([ctx.component_name or ""] + names[:50] + texts[:50])

    domain, score, matched = detect_industry(primary_text)
    if score == 0.0:
        domain, score, matched = detect_industry(secondary_text)
        score *= 0.5

    industry: Dict[str, Any] = {}
    if matched:
        industry = {
            "domain": domain,
            "confidence": round(score, 3),
            "matchedKeywords": matched,
            "regulations": INDUSTRY_REGULATIONS.get(domain, INDUSTRY_REGULATIONS["general"]),
            "bestPractices": INDUSTRY_BEST_PRACTICES.get(domain, INDUSTRY_BEST_PRACTICES["general"]),
        }

    function = _primary_function(([ctx.component_name] if ctx.component_name else []) + names)
    actions = _user_actions(texts + names)

    data = {
        "industryDomain": industry,
        "primaryFunction": function,
        "userActions": actions,
        "regulations": industry.get("regulations", INDUSTRY_REGULATIONS["general"]),
    }

    field_scores = [
        min(100.0, 25.0 + score * 300.0) if industry else 0.0,
        80.0 if function else 0.0,
        min(90.0, 50.0 + 10.0 * len(actions)) if actions else 0.0,
    ]
    confidence = sum(field_scores) / len(field_scores)
    return AnalysisOutcome.success(
        make_fragment(ContextSource.BUSINESS, data, EXPECTED_FIELDS, confidence=confidence)
    )
