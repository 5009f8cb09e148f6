"""
Keyword extraction for postfilter learning.

Turns post text into a short, frequency-ranked list of content words
used to learn which topics the user keeps or filters.
"""

import re
from collections import Counter
from typing import Any, List

from postfilter.constants import (
    MAX_EXTRACTED_KEYWORDS,
    MAX_KEYWORD_LENGTH,
    MIN_KEYWORD_LENGTH,
)


# Function words plus feed noise ("linkedin", "post", "today", ...)
STOP_WORDS = frozenset("""
    a an the and or but in on at to for of with by from as is was are were
    been be have has had do does did will would could should may might must
    shall can need dare ought used i me my myself we our ours ourselves you
    your yours yourself yourselves he him his himself she her hers herself
    it its itself they them their theirs themselves what which who whom
    this that these those am being having doing if because until while
    about against between into through during before after above below up
    down out off over under again further then once here there when where
    why how all each few more most other some such no nor not only own same
    so than too very s t just don now d ll m o re ve y ain aren couldn didn
    doesn hadn hasn haven isn ma mightn mustn needn shan shouldn wasn weren
    won wouldn also get got getting going go goes gone come comes coming
    came make makes making made take takes taking took taken see sees
    seeing saw seen know knows knowing knew known think thinks thinking
    thought want wants wanting wanted use uses using find finds finding
    found give gives giving gave given tell tells telling told work works
    working worked call calls calling called try tries trying tried ask
    asks asking asked needs needing needed feel feels feeling felt become
    becomes becoming became leave leaves leaving left put puts putting mean
    means meaning meant keep keeps keeping kept let lets letting begin
    begins beginning began begun seem seems seeming seemed help helps
    helping helped show shows showing showed shown hear hears hearing heard
    play plays playing played run runs running ran move moves moving moved
    live lives living lived believe believes believing believed bring
    brings bringing brought happen happens happening happened write writes
    writing wrote written provide provides providing provided sit sits
    sitting sat stand stands standing stood lose loses losing lost pay pays
    paying paid meet meets meeting met include includes including included
    continue continues continuing continued set sets setting learn learns
    learning learned change changes changing changed lead leads leading led
    understand understands understanding understood watch watches watching
    watched follow follows following followed stop stops stopping stopped
    create creates creating created speak speaks speaking spoke spoken read
    reads reading allow allows allowing allowed add adds adding added spend
    spends spending spent grow grows growing grew grown open opens opening
    opened walk walks walking walked win wins winning offer offers offering
    offered remember remembers remembering remembered love loves loving
    loved consider considers considering considered appear appears
    appearing appeared buy buys buying bought wait waits waiting waited
    serve serves serving served die dies dying died send sends sending sent
    expect expects expecting expected build builds building built stay
    stays staying stayed fall falls falling fell fallen cut cuts cutting
    reach reaches reaching reached kill kills killing killed remain remains
    remaining remained linkedin post posts share shared sharing comment
    comments like likes liked liking people person thing things way ways
    day days year years time times today week month
""".split())

_NON_WORD = re.compile(r"[^\w\s'-]")
_DIGITS_ONLY = re.compile(r"^\d+$")
_PUNCT_ONLY = re.compile(r"^['-]+$")


def _is_keyword(word: str) -> bool:
    if len(word) < MIN_KEYWORD_LENGTH or len(word) > MAX_KEYWORD_LENGTH:
        return False
    if word in STOP_WORDS:
        return False
    if _DIGITS_ONLY.match(word) or _PUNCT_ONLY.match(word):
        return False
    return True


def extract_keywords(content: Any) -> List[str]:
    """
    Extract meaningful keywords from post text.

    Args:
        content: Post text

    Returns:
        Up to 20 lowercase keywords, most frequent first (ties keep
        first-seen order). Empty for invalid input.
    """
    if not content or not isinstance(content, str):
        return []

    # Keep letters, digits, apostrophes and hyphens
    normalized = _NON_WORD.sub(" ", content.lower())
    words = [w for w in normalized.split() if _is_keyword(w)]

    # Counter preserves first-seen order for equal counts
    counts = Counter(words)
    return [word for word, _ in counts.most_common(MAX_EXTRACTED_KEYWORDS)]
