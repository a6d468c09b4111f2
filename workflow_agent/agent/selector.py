"""
Pattern Selector

Maps an intent classification and the conversation context onto an
execution pattern. Rules are evaluated in order and the first match wins,
so overlapping rules resolve by position rather than by specificity.
"""

from workflow_agent.models.conversation import ConversationContext
from workflow_agent.models.intent import IntentClassification
from workflow_agent.models.workflow import PatternType

LOW_CONFIDENCE_THRESHOLD = 0.6
LONG_CONVERSATION_TURNS = 10
MANY_ENTITIES = 3


def _contains_any(text: str, words) -> bool:
    return any(word in text for word in words)


def select_pattern(intent: IntentClassification, context: ConversationContext) -> PatternType:
    """Select the workflow pattern for a classified request.

    Args:
        intent: Intent classification from the flow router
        context: Current conversation context

    Returns:
        The selected pattern type
    """
    name = intent.name

    # Uncertain intents go through the flow router
    if intent.confidence < LOW_CONFIDENCE_THRESHOLD:
        return PatternType.ROUTING

    if (
        len(context.conversation_history) > LONG_CONVERSATION_TURNS
        or len(intent.entities) > MANY_ENTITIES
        or ("analyze" in name and "compare" in name)
    ):
        return PatternType.ORCHESTRATOR_WORKERS

    if any(entity.name == "product_list" for entity in intent.entities) or _contains_any(
        name, ("and", "also")
    ):
        return PatternType.PARALLEL_FANOUT

    if _contains_any(name, ("improve", "optimize", "better")):
        return PatternType.EVALUATOR_OPTIMIZER

    if _contains_any(name, ("step", "process", "guide")):
        return PatternType.SEQUENTIAL_CHAINING

    return PatternType.ROUTING


__all__ = ["select_pattern"]
