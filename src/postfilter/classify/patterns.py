"""
Pattern library for postfilter.

Defines the regex patterns, grouped by category, used for local
classification without any external API call. Patterns are matched
case-insensitively against the whole post text.

Known limitations are kept as-is (see tests/test_patterns.py):
- End-of-string anchored patterns miss when punctuation follows
- Emoji next to a word boundary never matches
- Quote patterns followed by a word boundary never match
- Singular/plural forms are handled inconsistently
- Some political terms ("election", "Senate") match non-political text
"""

import re
from typing import Dict, List, Pattern


# Pattern sources per category. The source string doubles as the pattern
# identifier in learning data, so edits here reset accuracy statistics.
PATTERN_SOURCES: Dict[str, List[str]] = {
    "ai_generated": [
        # Formulaic openings
        r"\b(in today's fast-paced|in today's world|in this day and age)\b",
        r"\b(let me share|here's what I learned|here's the thing)\b",
        r"\b(I've been thinking about|it got me thinking)\b",
        # Buzzwords and jargon
        r"\b(game.?changer|level.?up|deep dive|unpack this)\b",
        r"\b(at the end of the day|move the needle|lean in)\b",
        r"\b(synergy|leverage|optimize|streamline|scalable)\b",
        r"\b(paradigm shift|best practices|value proposition)\b",
        # Generic conclusions
        r"\b(the bottom line is|here's the takeaway|key takeaways?)\b",
        r"\b(what are your thoughts|I'd love to hear)\s*$",
    ],
    "thought_leadership": [
        # Humble brags disguised as insights
        r"\b(unpopular opinion|hot take|controversial take)\b",
        r"\b(I've learned|lessons? I've learned|what I learned)\b",
        r"\b(the secret to|the key to success|the truth about)\b",
        # Numbered lists of wisdom
        r"\b\d+\s*(lessons?|things?|tips?|ways?|habits?|rules?)\s*(I('ve)?|for|to|that)\b",
        r"\b(here are|here's)\s+\d+\s*(things?|ways?|tips?|lessons?)\b",
        # Self-promotion disguised as advice
        r"\b(when I (started|began|was)|years? ago,? I)\b",
        r"\b(my journey|my story|my experience taught)\b",
        # LinkedIn-speak
        r"\b(grateful|blessed|humbled)\s+(to|for|by)\b",
        r"\b(excited to announce|thrilled to share|proud to)\b",
    ],
    "engagement_bait": [
        # Direct engagement requests
        r"\b(agree\??|thoughts\??|am I (right|wrong)\??)\s*$",
        r"\b(like if you|share if you|comment (below|if you))\b",
        r"\b(tag someone|share this with)\b",
        r"\b(repost|share)\s+if\s+you\b",
        # Manufactured controversy
        r"\b(most people don't|nobody talks about|unpopular but)\b",
        r"\b(change my mind|prove me wrong|fight me)\b",
        # Engagement farming
        r"""\b(drop a 🔥|type\s+["']?yes["']?|comment\s+["'][^"']+["'])\b""",
        r"\b(who else|anyone else|raise your hand)\b",
        # Poll-style questions with obvious answers
        r"\b(would you rather|what would you choose|which one)\b",
    ],
    "self_promotion": [
        # Product/service plugs
        r"\b(check out my|grab your copy|get your free|download my)\b",
        r"\b(link in (bio|comments?|profile))\b",
        r"\b(use code|discount code|promo code|coupon)\b",
        r"\b(DM me|send me a message|book a call)\b",
        # Achievement announcements
        r"\b(just hit|just reached|just crossed)\s+\d",
        r"\b(we (just )?launched|I (just )?(launched|released|published))\b",
        r"\b(now available|out now|just dropped)\b",
        # Hiring/recruiting
        r"\b(we're hiring|we are hiring|join (my|our) team)\b",
        r"\b(open positions?|job opening|apply now)\b",
    ],
    "politics": [
        # Political figures and parties
        r"\b(democrat|republican|liberal|conservative)\b",
        r"\b(left.?wing|right.?wing|bipartisan)\b",
        r"\b(Biden|Trump|Congress|Senate|Parliament)\b",
        # Policy topics
        r"\b(immigration policy|gun control|abortion|climate policy)\b",
        r"\b(tax (cuts?|hikes?|policy)|healthcare reform)\b",
        r"\b(election|voting|ballot|political)\b",
        # Partisan language
        r"\b(libs|maga|woke|snowflake)\b",
        r"\b(the (left|right) (is|are|wants?))\b",
    ],
    "rage_bait": [
        # Provocative statements
        r"\b(I don't care what you think|deal with it|cry about it)\b",
        r"\b(wake up|open your eyes|sheeple)\b",
        r"\b(this is what's wrong with|the problem with society)\b",
        # Generational attacks
        r"\b(boomers? (are|ruin)|millennials? (are|kill)|gen.?z (is|are))\b",
        r"\b(kids these days|back in my day|your generation)\b",
        # Intentionally divisive
        r"\b(if you (disagree|don't like)|haters (gonna|will))\b",
        r"\b(snowflakes?|triggered|offended)\b",
    ],
    "corporate_fluff": [
        # Empty announcements
        r"\b(excited to announce|thrilled to share|proud to announce)\b",
        r"\b(pleased to (announce|share|welcome))\b",
        r"\b(delighted to|honored to|privileged to)\b",
        # Corporate jargon
        r"\b(synergies|stakeholders|value.?add|circle back)\b",
        r"\b(going forward|moving forward|at this juncture)\b",
        r"\b(leverage our|optimize our|transform our)\b",
        # Award/recognition spam
        r"\b(award.?winning|industry.?leading|world.?class)\b",
        r"\b(recognized by|named (a|as)|ranked #?\d)\b",
        # Partnership announcements
        r"\b(strategic partnership|partnership with|partnered with)\b",
        r"\b(joining forces|teaming up|collaboration with)\b",
    ],
}


def compile_patterns(sources: Dict[str, List[str]]) -> Dict[str, List[Pattern]]:
    """
    Compile a category -> pattern-source table.

    Args:
        sources: Mapping of category id to ordered regex sources

    Returns:
        Mapping of category id to compiled, case-insensitive patterns
        (category and pattern order preserved)
    """
    return {
        category_id: [re.compile(source, re.IGNORECASE) for source in category_sources]
        for category_id, category_sources in sources.items()
    }


LOCAL_PATTERNS: Dict[str, List[Pattern]] = compile_patterns(PATTERN_SOURCES)


def get_pattern_library() -> Dict[str, List[str]]:
    """
    Get the pattern sources for reference/tuning.

    Returns:
        Copy of the category -> pattern identifier table
    """
    return {category_id: list(sources) for category_id, sources in PATTERN_SOURCES.items()}


def pattern_id(pattern: Pattern) -> str:
    """Identifier recorded in learning data for a compiled pattern."""
    return pattern.pattern
