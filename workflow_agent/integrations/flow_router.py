"""
Keyword Flow Router

Rule-based intent classification and a small catalogue of conversation
flows. Used as the default flow router for local runs and the CLI.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from workflow_agent.agent.contracts import FlowRouter, LLMProviderRegistry
from workflow_agent.agent.errors import AgentError, ErrorCode
from workflow_agent.models.conversation import (
    ActionType,
    ConversationContext,
    NextStepAction,
    UserInput,
)
from workflow_agent.models.intent import (
    ConversationFlow,
    FlowCategory,
    FlowParameters,
    FlowResult,
    FlowState,
    IntentClassification,
)
from workflow_agent.models.workflow import AgentResponse, PatternType, ResponseMetadata

logger = logging.getLogger(__name__)

DEFAULT_FLOW_ID = "general_assistance"
CLARIFICATION_FLOW_ID = "clarification_flow"

# (keywords, intent name, category)
INTENT_RULES = (
    (("revenue", "sales", "profit"), "business_analysis", FlowCategory.BUSINESS_PERFORMANCE),
    (("product", "inventory", "catalog"), "product_management", FlowCategory.PRODUCT_MANAGEMENT),
    (("marketing", "campaign", "email"), "marketing_strategy", FlowCategory.MARKETING),
    (("account", "profile", "subscription"), "account_management", FlowCategory.ACCOUNT_MANAGEMENT),
)
MATCHED_CONFIDENCE = 0.7
UNMATCHED_CONFIDENCE = 0.5


def _action(action_id: str, title: str, description: str, action_type: ActionType) -> NextStepAction:
    return NextStepAction(id=action_id, title=title, description=description, action_type=action_type)


def default_flows() -> List[ConversationFlow]:
    return [
        ConversationFlow(
            id="business_analysis",
            name="Business Analysis",
            description="Revenue, sales and profitability analysis",
            category=FlowCategory.BUSINESS_PERFORMANCE,
            next_step_actions=[
                _action("view_analytics", "View Analytics Dashboard",
                        "Check your business performance metrics", ActionType.VIEW_ANALYTICS),
                _action("analyze_product", "Analyze Product Performance",
                        "Get detailed insights about product performance", ActionType.ANALYZE_PRODUCT),
            ],
        ),
        ConversationFlow(
            id="product_management",
            name="Product Management",
            description="Product catalog and inventory management",
            category=FlowCategory.PRODUCT_MANAGEMENT,
            next_step_actions=[
                _action("manage_inventory", "Manage Inventory",
                        "Review stock levels and reorder points", ActionType.MANAGE_INVENTORY),
                _action("open_seo_optimizer", "Open SEO Optimizer",
                        "Optimize your product for search engines", ActionType.OPEN_SEO_OPTIMIZER),
            ],
        ),
        ConversationFlow(
            id="marketing_strategy",
            name="Marketing Strategy",
            description="Campaign planning and email marketing",
            category=FlowCategory.MARKETING,
            next_step_actions=[
                _action("create_campaign", "Create Marketing Campaign",
                        "Set up a new marketing campaign", ActionType.CREATE_CAMPAIGN),
            ],
        ),
        ConversationFlow(
            id="account_management",
            name="Account Management",
            description="Profile, subscription and account settings",
            category=FlowCategory.ACCOUNT_MANAGEMENT,
            next_step_actions=[
                _action("update_profile", "Update Profile",
                        "Change your account details", ActionType.UPDATE_PROFILE),
            ],
        ),
        ConversationFlow(
            id=DEFAULT_FLOW_ID,
            name="General Assistance",
            description="Provides general help and guidance",
            category=FlowCategory.GENERAL,
            next_step_actions=[
                _action("ask_clarification", "Ask for clarification",
                        "Get more specific information about your needs", ActionType.ASK_QUESTION),
                _action("view_help", "View help documentation",
                        "Browse available features and capabilities", ActionType.VIEW_ANALYTICS),
            ],
        ),
    ]


class KeywordFlowRouter(FlowRouter):
    """Flow router driven by keyword rules instead of a model."""

    def __init__(
        self,
        llm_registry: Optional[LLMProviderRegistry] = None,
        flows: Optional[List[ConversationFlow]] = None,
    ):
        self.llm_registry = llm_registry
        self.flows: Dict[str, ConversationFlow] = {}
        for flow in flows if flows is not None else default_flows():
            self.register_flow(flow)

    def register_flow(self, flow: ConversationFlow) -> None:
        self.flows[flow.id] = flow

    def remove_flow(self, flow_id: str) -> None:
        self.flows.pop(flow_id, None)

    def list_flows(self) -> List[ConversationFlow]:
        return list(self.flows.values())

    async def classify_intent(
        self, user_input: UserInput, context: ConversationContext
    ) -> IntentClassification:
        content = user_input.content.lower()
        for keywords, name, category in INTENT_RULES:
            if any(keyword in content for keyword in keywords):
                return IntentClassification(name=name, confidence=MATCHED_CONFIDENCE, category=category)
        return IntentClassification(
            name="general_inquiry",
            confidence=UNMATCHED_CONFIDENCE,
            category=FlowCategory.GENERAL,
        )

    def select_flow(self, intent: IntentClassification) -> ConversationFlow:
        """Pick the best scoring flow in the intent's category."""
        candidates = [flow for flow in self.flows.values() if flow.category == intent.category]
        if not candidates:
            return self.default_flow()

        best = candidates[0]
        for flow in candidates[1:]:
            if flow_score(flow, intent) > flow_score(best, intent):
                best = flow
        return best

    def default_flow(self) -> ConversationFlow:
        flow = self.flows.get(DEFAULT_FLOW_ID)
        if flow is not None:
            return flow
        return ConversationFlow(
            id="fallback",
            name="General Assistance",
            description="Fallback flow for unclassified intents",
            category=FlowCategory.GENERAL,
        )

    async def execute_flow(self, flow: ConversationFlow, parameters: FlowParameters) -> FlowResult:
        flow_state = FlowState()
        try:
            provider_name = await self._provider_name()
            elapsed_ms = (datetime.now() - parameters.input.timestamp).total_seconds() * 1000
            response = AgentResponse(
                content=f'Executing {flow.name} flow for your request: "{parameters.input.content}"',
                next_step_actions=list(flow.next_step_actions),
                metadata=ResponseMetadata(
                    processing_time=max(0.0, elapsed_ms),
                    provider=provider_name,
                    workflow=PatternType.ROUTING,
                    confidence=parameters.intent.confidence,
                    flow_id=flow.id,
                ),
            )
        except Exception as e:
            logger.error(f"Flow {flow.id} failed: {e}")
            raise AgentError(
                code=ErrorCode.FLOW_EXECUTION_ERROR,
                message=f"Failed to execute flow {flow.id}: {e}",
                details={"flow_id": flow.id, "original_error": e},
                recoverable=True,
            ) from e

        flow_state.current_step = "completed"
        flow_state.completed_steps.extend(["initialize", "execute", "completed"])
        next_flow = CLARIFICATION_FLOW_ID if parameters.intent.confidence < MATCHED_CONFIDENCE else None
        return FlowResult(response=response, flow_state=flow_state, next_flow=next_flow)

    async def _provider_name(self) -> str:
        if self.llm_registry is None:
            return "flow_router"
        providers = await self.llm_registry.list_providers()
        if not providers:
            raise RuntimeError("No LLM provider available for flow execution")
        return providers[0].name


def flow_score(flow: ConversationFlow, intent: IntentClassification) -> float:
    """Category match, name similarity and entity mentions in the description."""
    score = 0.0
    if flow.category == intent.category:
        score += 50
    if intent.name.lower() in flow.name.lower():
        score += 30
    description = flow.description.lower()
    for entity in intent.entities:
        if entity.value and entity.value.lower() in description:
            score += entity.confidence * 20
    return score


__all__ = ["KeywordFlowRouter", "default_flows", "flow_score", "DEFAULT_FLOW_ID"]
