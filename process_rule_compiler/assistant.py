"""
Text-completion assistant for the flow editor.

Provides a unified interface over the hosted providers plus a local mock
that answers from the current graph context. Failures never reach the
caller: they are logged and replaced by a fixed fallback answer.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import anthropic
from openai import AzureOpenAI, OpenAI

from .config import Settings
from .models import GraphEdge, GraphNode, NodeKind

logger = logging.getLogger(__name__)

MAX_TOKENS = 500
TEMPERATURE = 0.7
AZURE_API_VERSION = "2024-02-15-preview"

FALLBACK_RESPONSE = (
    "I'm having trouble connecting to my AI service right now. Here are some things you can try:\n\n"
    "• Check your internet connection\n"
    "• Try again in a moment\n"
    "• Use the visual flow builder to create your process\n"
    "• Contact support if the issue persists\n\n"
    "You can still build your flow using the drag-and-drop interface!"
)


@dataclass
class AssistantContext:
    """What the assistant knows about the graph being edited."""
    node_count: int = 0
    edge_count: int = 0
    entity_types: List[str] = field(default_factory=list)
    flow_type: str = "business-process"

    @classmethod
    def from_graph(
        cls,
        nodes: List[GraphNode],
        edges: List[GraphEdge],
        flow_type: str = "business-process"
    ) -> "AssistantContext":
        return cls(
            node_count=len(nodes),
            edge_count=len(edges),
            entity_types=[
                n.data.get("entityType") or "unknown"
                for n in nodes
                if n.kind == NodeKind.ENTITY
            ],
            flow_type=flow_type,
        )

    def to_dict(self) -> Dict:
        return {
            "nodeCount": self.node_count,
            "edgeCount": self.edge_count,
            "entityTypes": list(self.entity_types),
            "flowType": self.flow_type,
        }


def build_system_prompt(context: AssistantContext) -> str:
    return f"""You are an AI assistant specialized in helping users build business process flows and event correlation rules.

Current Context:
- Flow Type: {context.flow_type}
- Number of Entities: {len(context.entity_types)}
- Number of Connections: {context.edge_count}
- Current Entities: {', '.join(context.entity_types)}

Your role is to:
1. Help users understand how to build business process flows
2. Provide guidance on adding entities, conditions, and actions
3. Explain best practices for event correlation
4. Answer questions about the flow builder interface
5. Suggest improvements to their current flow

Keep responses helpful, concise, and focused on business process automation. Use bullet points and clear examples when appropriate."""


class LLMClient(ABC):
    """Abstract base class for completion providers."""

    @abstractmethod
    def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Make a completion request."""
        pass


class OpenAIClient(LLMClient):
    """OpenAI chat completions."""

    def __init__(self, api_key: Optional[str], model: str = "gpt-4o-mini", base_url: Optional[str] = None):
        if not api_key:
            raise ValueError("OpenAI API key not configured")
        self.model = model
        self._client = OpenAI(api_key=api_key, base_url=base_url)

    def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        response = self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=TEMPERATURE,
            max_tokens=MAX_TOKENS,
        )
        return response.choices[0].message.content


class AzureOpenAIClient(OpenAIClient):
    """Azure-hosted OpenAI deployment."""

    def __init__(self, api_key: Optional[str], base_url: Optional[str], deployment: str = "gpt-4"):
        if not api_key or not base_url:
            raise ValueError("Azure OpenAI configuration missing")
        self.model = deployment
        self._client = AzureOpenAI(
            api_key=api_key,
            azure_endpoint=base_url,
            api_version=AZURE_API_VERSION,
        )


class AnthropicClient(LLMClient):
    """Anthropic messages API."""

    def __init__(self, api_key: Optional[str], model: str = "claude-sonnet-4-20250514"):
        if not api_key:
            raise ValueError("Anthropic API key not configured")
        self.model = model
        self._client = anthropic.Anthropic(api_key=api_key)

    def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        kwargs = {
            "model": self.model,
            "max_tokens": MAX_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        response = self._client.messages.create(**kwargs)
        return response.content[0].text


# Mock answers: (keywords, answer), first match wins
MOCK_TOPICS = (
    (("help", "how"),
     "I'm here to help you build business process flows! Here's what you can do:\n\n"
     "• **Drag Entities**: Start by dragging entities from the left panel\n"
     "• **Add Conditions**: Use condition nodes to specify business rules\n"
     "• **Connect Nodes**: Link nodes to create flow logic\n"
     "• **Configure Actions**: Define what happens when conditions are met\n\n"
     "What specific aspect would you like help with?"),
    (("entity", "data"),
     "Entities are your data sources. Each entity represents a table or dataset:\n\n"
     "• **Customer Entity**: Contains customer information\n"
     "• **Sales Entity**: Contains order and transaction data\n"
     "• **Inventory Entity**: Contains product and stock information\n"
     "• **System Entity**: Contains system metrics and logs\n\n"
     "Drag these onto the canvas to start building your flow!"),
    (("condition", "rule"),
     "Conditions define when actions should be triggered. You can create conditions like:\n\n"
     "• `customer.status = 'active'`\n"
     "• `order.amount > 1000`\n"
     "• `inventory.quantity < threshold`\n"
     "• `system.error_rate > 5%`\n\n"
     "These conditions determine when your business process should execute."),
    (("action", "trigger"),
     "Actions are what happen when conditions are met. Common actions include:\n\n"
     "• **Send Notifications**: Alert managers or users\n"
     "• **Trigger Calculations**: Perform business logic\n"
     "• **Create Alerts**: Generate system alerts\n"
     "• **Update Data**: Modify records or status\n"
     "• **Start Workflows**: Initiate other processes\n\n"
     "What type of action do you want to configure?"),
    (("example", "sample"),
     "Here's a common business process example:\n\n"
     "**High-Value Order Alert Process:**\n"
     "1. Customer places order (Customer Entity)\n"
     "2. Order amount > $1000 (Condition)\n"
     "3. Send notification to manager (Action)"),
    (("save", "export"),
     "You can save your flow in several ways:\n\n"
     "• **Save Process**: Stores the flow in the system\n"
     "• **Export JSON**: Download the configuration\n\n"
     "The JSON panel shows your current flow configuration."),
)

MOCK_START = (
    "Great! Let's start building your business process flow. First, drag some entities "
    "from the left panel onto the canvas. These will be your data sources (like customers, "
    "orders, or inventory)."
)
MOCK_CONNECT = (
    "Perfect! Now you need to connect your entities. Try dragging from one node's output "
    "handle to another node's input handle. You can also add Join nodes to specify how "
    "entities should be related."
)
MOCK_DEFAULT = (
    "I understand you're working on a business process flow. I can help you with:\n\n"
    "• Adding and configuring entities\n"
    "• Creating business rules and conditions\n"
    "• Setting up actions and triggers\n"
    "• Connecting nodes to build flow logic\n"
    "• Best practices for process automation\n\n"
    "What specific aspect would you like help with?"
)


class MockLLMClient(LLMClient):
    """Deterministic local answers chosen from the message and graph context."""

    def __init__(self, context: Optional[AssistantContext] = None):
        self.context = context or AssistantContext()

    def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        message = prompt.lower()

        if self.context.node_count == 0 and ("start" in message or "begin" in message):
            return MOCK_START
        if self.context.node_count > 0 and self.context.edge_count == 0:
            if "connect" in message or "link" in message:
                return MOCK_CONNECT

        for keywords, answer in MOCK_TOPICS:
            if any(kw in message for kw in keywords):
                return answer
        return MOCK_DEFAULT


def get_llm_client(settings: Settings, context: Optional[AssistantContext] = None) -> LLMClient:
    """
    Build the client for the configured provider.

    Raises:
        ValueError: When the provider's credentials are missing
    """
    provider = settings.ai_provider
    if provider == "openai":
        return OpenAIClient(settings.ai_api_key or settings.openai_api_key, base_url=settings.ai_base_url)
    if provider == "anthropic":
        return AnthropicClient(settings.ai_api_key or settings.anthropic_api_key)
    if provider == "azure":
        return AzureOpenAIClient(settings.ai_api_key, settings.ai_base_url)
    return MockLLMClient(context)


class Assistant:
    """Answer editor questions through the configured provider."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[LLMClient] = None):
        self.settings = settings or Settings()
        self.client = client

    def generate(self, message: str, context: Optional[AssistantContext] = None) -> str:
        """
        Generate an answer for the user's message.

        Args:
            message: The user's question
            context: Summary of the graph being edited

        Returns:
            The provider's answer, or FALLBACK_RESPONSE on any failure
        """
        context = context or AssistantContext()
        try:
            client = self.client or get_llm_client(self.settings, context)
            return client.complete(message, system_prompt=build_system_prompt(context))
        except Exception as e:
            logger.error(f"Assistant provider {self.settings.ai_provider!r} failed: {e}")
            return FALLBACK_RESPONSE
