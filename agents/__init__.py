"""Agents for the research assistant pipeline."""

from .intent_classifier import IntentClassifier, IntentRule, has_place_token
from .query_refiner import QueryRefiner
from .product_extractor import ProductTermExtractor, build_marketplace_url
from .reply_synthesizer import ReplySynthesizer, FALLBACK_TEXT

__all__ = [
    "IntentClassifier",
    "IntentRule",
    "has_place_token",
    "QueryRefiner",
    "ProductTermExtractor",
    "build_marketplace_url",
    "ReplySynthesizer",
    "FALLBACK_TEXT",
]
