"""
Free-text ingredient parsing.

Turns "2 cups of fresh tomatoes, cheddar cheese & a splash of milk" into
candidate phrases ("fresh tomatoes"/"tomatoes", "cheddar cheese", "milk")
that the normalizer can look up against the canonical ingredient list.
"""

import re
from dataclasses import dataclass
from typing import List, Optional


STOPWORDS = frozenset(
    """
    a an the of for from to at by in on or is was are were be been have has had
    do does did will would could should may might can some any all no not also
    very so just only but then than as if when where how what who which why this
    that these those it its they them their we us our you your my me mine his her
    him i ate eating had lunch dinner breakfast snack meal
    """.split()
)

# Descriptors that qualify an ingredient without identifying it
MODIFIERS = frozenset(
    """
    spicy hot cold warm fresh dried frozen raw cooked grilled fried baked roasted
    steamed boiled sauteed crispy crunchy soft tender juicy sweet sour salty bitter
    mild strong light heavy thick thin creamy chunky smooth fine large small big
    little tiny organic natural homemade canned bottled packaged processed whole
    sliced diced chopped minced grated shredded mashed crushed ground powdered
    extra added mixed pure plain
    """.split()
)

QUANTITY_WORDS = frozenset(
    """
    cup cups tablespoon tablespoons tbsp teaspoon teaspoons tsp ounce ounces oz
    pound pounds lb lbs gram grams g kilogram kilograms kg liter liters litre
    litres l milliliter milliliters ml gallon gallons quart quarts pint pints
    handful pinch pinches dash dashes splash drops piece pieces slice slices
    clove cloves bunch bunches can cans jar jars bottle bottles package packages
    box boxes bowl bowls plate plates serving servings glass glasses
    """.split()
)

# Phrase separators: punctuation lists and joining words
_SEPARATORS = re.compile(r"[,;/&+\n]|\band\b|\bwith\b|\bplus\b")
_NON_WORD = re.compile(r"[^a-z0-9\s'-]")
_QUANTITY = re.compile(r"^\d+([./]\d+)?[a-z]*$")


@dataclass(frozen=True)
class IngredientPhrase:
    """A candidate ingredient mention.

    text keeps descriptive words ("spicy food"), core drops them ("food").
    """

    text: str
    core: str

    def candidates(self) -> List[str]:
        """Forms to look up, most specific first."""
        if self.core and self.core != self.text:
            return [self.text, self.core]
        return [self.text]


def contains_letter(text: str) -> bool:
    return re.search(r"[a-zA-Z]", text) is not None


def clean_text(text: str) -> str:
    """Lowercase, drop smart quotes and punctuation other than hyphens/apostrophes."""
    text = text.lower().replace("’", "'").replace("‘", "'")
    text = text.replace("“", " ").replace("”", " ")
    text = _NON_WORD.sub(" ", text)
    return " ".join(text.split())


def _is_noise(token: str) -> bool:
    if token in STOPWORDS or token in QUANTITY_WORDS:
        return True
    if _QUANTITY.match(token):  # "2", "1/2", "100g"
        return True
    return not contains_letter(token) or len(token) == 1


def tokenize(phrase: str) -> List[str]:
    """Words of a phrase minus stopwords, quantities and stray punctuation."""
    tokens = []
    for token in clean_text(phrase).split():
        token = token.strip("-'")
        if token and not _is_noise(token):
            tokens.append(token)
    return tokens


def build_phrase(chunk: str) -> Optional[IngredientPhrase]:
    """A single phrase from text that is not split further; None when only noise is left."""
    tokens = tokenize(chunk)
    if not tokens:
        return None
    text = " ".join(tokens)
    core = " ".join(t for t in tokens if t not in MODIFIERS)
    return IngredientPhrase(text=text, core=core)


def extract_phrases(raw_text: str) -> List[IngredientPhrase]:
    """
    Split raw text into candidate ingredient phrases.

    Duplicate phrases are dropped; order of first appearance is kept.
    """
    phrases: List[IngredientPhrase] = []
    seen = set()
    for chunk in _SEPARATORS.split(raw_text.lower()):
        phrase = build_phrase(chunk)
        if phrase is None or phrase.text in seen:
            continue
        seen.add(phrase.text)
        phrases.append(phrase)
    return phrases


def singularize(word: str) -> str:
    """Simple English singularization, good enough for ingredient names."""
    if len(word) <= 3 or word.endswith(("ss", "us", "is")):
        return word
    if word.endswith("ies"):
        return word[:-3] + "y"  # berries -> berry
    if word.endswith("oes"):
        return word[:-2]  # tomatoes -> tomato
    if word.endswith(("ches", "shes", "sses", "xes", "zes")):
        return word[:-2]  # peaches -> peach
    if word.endswith("s"):
        return word[:-1]  # carrots -> carrot
    return word


def singularize_phrase(phrase: str) -> str:
    """Singularize the head (last) word of a phrase."""
    words = phrase.split()
    if not words:
        return phrase
    words[-1] = singularize(words[-1])
    return " ".join(words)
