"""Intent classifier routing utterances to a research strategy."""

import re
from dataclasses import dataclass
from typing import Callable

from schemas.context import Intent


PURCHASE_PATTERNS = [
    r"欲し",
    r"ほしい",
    r"買(い|う|え|お|っ)",
    r"かいたい",
    r"購入",
    r"入手",
    r"手に入",
    r"最安",
    r"安く",
    r"安い(店|ところ)",
    r"在庫",
    r"売って(る|います)",
    r"売り場",
    r"通販",
    r"取り扱",
    r"\bwant\b",
    r"\bbuy\b",
    r"\bpurchase\b",
    r"where (can i|to) (buy|get)",
    r"\bcheapest\b",
    r"in.?stock",
]

NEARBY_PATTERNS = [
    r"近く",
    r"ちかく",
    r"近所",
    r"周辺",
    r"付近",
    r"最寄",
    r"近い",
    r"\bnearby\b",
    r"\bnear( me)?\b",
    r"\baround( here)?\b",
    r"\bclosest\b",
]

ADDRESS_PATTERNS = [
    r"住所",
    r"所在地",
    r"どこ",
    r"場所",
    r"アクセス",
    r"行き方",
    r"\baddress\b",
    r"\blocation\b",
    r"\bwhere\b",
]

DESCRIBE_PATTERNS = [
    r"どんな",
    r"どういう",
    r"雰囲気",
    r"特徴",
    r"what kind of",
    r"what.{0,10}like",
    r"\batmosphere\b",
    r"\bvibe\b",
]

PLACE_NAMES = [
    "東京", "大阪", "京都", "名古屋", "横浜", "神戸", "福岡", "札幌", "仙台", "広島",
    "那覇", "沖縄", "北海道", "渋谷", "新宿", "池袋", "原宿", "表参道", "銀座", "秋葉原",
    "上野", "浅草", "中野", "吉祥寺", "下北沢", "自由が丘", "六本木", "品川", "恵比寿",
    "梅田", "難波", "なんば", "心斎橋", "天王寺", "日本橋", "三宮", "博多", "天神",
    "shibuya", "shinjuku", "ikebukuro", "harajuku", "ginza", "akihabara", "ueno",
    "asakusa", "nakano", "tokyo", "osaka", "kyoto", "nagoya", "yokohama", "kobe",
    "fukuoka", "sapporo", "sendai", "hiroshima", "okinawa", "umeda", "namba", "hakata",
]

# Kanji/katakana word followed by a prefecture, municipality or station suffix.
PLACE_SUFFIX_PATTERN = re.compile(r"[一-龥々ァ-ヶー]{1,8}(都|府|県|市|区|町|村|駅)")

# Common nouns the suffix pattern would otherwise read as place names.
GENERIC_PLACE_WORDS = {
    "最寄駅", "地下鉄駅", "各駅", "隣駅", "主要駅", "始発駅", "終着駅", "ターミナル駅",
    "下町", "城下町", "港町", "田舎町", "門前町",
    "地区", "学区", "特区", "各区",
    "都市", "首都", "市町", "市町村", "都道府県", "他県", "他府県", "各県", "全県",
}


def _is_place_match(text: str, match: re.Match) -> bool:
    word = match.group(0)
    if word in GENERIC_PLACE_WORDS or has_nearby_words(word):
        return False
    # "〇〇駅を買う": the suffix word is the thing asked about, not a location
    return not text[match.end():].startswith("を")


def _matches_any(patterns: list[str], text: str) -> bool:
    return any(re.search(pattern, text) for pattern in patterns)


def has_purchase_words(text: str) -> bool:
    return _matches_any(PURCHASE_PATTERNS, text.lower())


def has_nearby_words(text: str) -> bool:
    return _matches_any(NEARBY_PATTERNS, text.lower())


def has_place_token(text: str) -> bool:
    """Whether the utterance names a place, prefecture, city or station."""
    text_lower = text.lower()
    for name in PLACE_NAMES:
        if name.isascii():
            if re.search(rf"\b{re.escape(name)}\b", text_lower):
                return True
        elif name in text:
            return True
    return any(_is_place_match(text, match) for match in PLACE_SUFFIX_PATTERN.finditer(text))


def _is_product(text: str) -> bool:
    # "near" words or a named place turn the same phrasing into a location search
    return (
        has_purchase_words(text)
        and not has_nearby_words(text)
        and not has_place_token(text)
    )


def _is_proximity(text: str) -> bool:
    return has_nearby_words(text)


def _is_address(text: str) -> bool:
    if _matches_any(ADDRESS_PATTERNS, text.lower()):
        return True
    return has_place_token(text) and has_purchase_words(text)


def _is_describe(text: str) -> bool:
    return _matches_any(DESCRIBE_PATTERNS, text.lower())


@dataclass(frozen=True)
class IntentRule:
    """Named predicate mapping an utterance to an intent."""
    name: str
    intent: Intent
    predicate: Callable[[str], bool]


class IntentClassifier:
    """Maps utterances to intents with an ordered rule cascade."""

    RULES = (
        IntentRule("product", Intent.PRODUCT, _is_product),
        IntentRule("proximity", Intent.PROXIMITY, _is_proximity),
        IntentRule("address", Intent.ADDRESS, _is_address),
        IntentRule("describe", Intent.DESCRIBE, _is_describe),
    )

    def classify(self, utterance: str) -> Intent:
        """
        Classify an utterance.

        Rules are evaluated in order and the first match wins, so a rule's
        position encodes its precedence. Falls back to ``Intent.GENERAL``.

        Args:
            utterance: Raw user text

        Returns:
            The intent of the utterance
        """
        text = (utterance or "").strip()
        if not text:
            return Intent.GENERAL

        for rule in self.RULES:
            if rule.predicate(text):
                return rule.intent

        return Intent.GENERAL

    def matched_rule(self, utterance: str) -> str:
        """Name of the rule that classified the utterance ("general" when none did)."""
        text = (utterance or "").strip()
        for rule in self.RULES:
            if text and rule.predicate(text):
                return rule.name
        return "general"
