"""
Engine Module - Description normalization, element resolution and readiness.

- DescriptionNormalizer: free-form description -> structured intent
- ElementResolver: ordered strategy chain -> one visible element
- ReadinessGate: poll a resolved element until it is safe to act on
"""

from nl_locator.engine.description_normalizer import (
    DescriptionNormalizer,
    NormalizedDescription,
    SelectorHints,
    normalize,
    to_selector_hints,
)
from nl_locator.engine.strategies import (
    STRATEGY_CHAIN,
    SEARCH_ROLE_PRECEDENCE,
    ResolutionContext,
    Strategy,
)
from nl_locator.engine.readiness_gate import (
    ReadinessGate,
    ReadinessRecord,
    ReadinessState,
    StabilityOutcome,
)
from nl_locator.engine.element_resolver import (
    Candidate,
    ClickableElement,
    ElementInfo,
    ElementResolver,
    FormElement,
    StructuredSelector,
)

__all__ = [
    # Normalizer
    "DescriptionNormalizer",
    "NormalizedDescription",
    "SelectorHints",
    "normalize",
    "to_selector_hints",
    # Strategies
    "STRATEGY_CHAIN",
    "SEARCH_ROLE_PRECEDENCE",
    "ResolutionContext",
    "Strategy",
    # Readiness
    "ReadinessGate",
    "ReadinessRecord",
    "ReadinessState",
    "StabilityOutcome",
    # Resolver
    "Candidate",
    "ClickableElement",
    "ElementInfo",
    "ElementResolver",
    "FormElement",
    "StructuredSelector",
]
