"""Capability table and catalog descriptions for each agent type."""
from __future__ import annotations

from typing import Dict, List, Tuple, Union

from agent_engine.core.models import AgentType

BASE_CAPABILITIES: Tuple[str, ...] = (
    "code_generation",
    "file_manipulation",
    "terminal_commands",
    "debugging",
    "testing",
)

_TYPE_CAPABILITIES: Dict[AgentType, Tuple[str, ...]] = {
    AgentType.AUTONOMOUS: ("task_planning", "multi_file_refactoring", "architecture_design"),
    AgentType.COLLABORATIVE: ("code_review", "pair_programming", "knowledge_sharing"),
    AgentType.SPECIALIZED: ("domain_expertise", "performance_optimization", "security_analysis"),
    AgentType.MULTIMODAL: ("image_analysis", "voice_processing", "diagram_generation"),
}

_TYPE_DESCRIPTIONS: Dict[AgentType, Tuple[str, str]] = {
    AgentType.AUTONOMOUS: (
        "Autonomous Agent",
        "Self-directing agents that can plan and execute complex multi-step tasks",
    ),
    AgentType.COLLABORATIVE: (
        "Collaborative Agent",
        "Agents designed to work alongside human developers in real-time",
    ),
    AgentType.SPECIALIZED: (
        "Specialized Agent",
        "Domain-specific agents with deep expertise in particular areas",
    ),
    AgentType.MULTIMODAL: (
        "Multimodal Agent",
        "Advanced agents that can process text, images, voice, and diagrams",
    ),
}


def resolve_agent_type(agent_type: Union[AgentType, str]) -> Union[AgentType, str]:
    """Map a raw type string onto :class:`AgentType`, keeping unknown strings as-is."""
    if isinstance(agent_type, AgentType):
        return agent_type
    try:
        return AgentType(agent_type)
    except ValueError:
        return agent_type


def capabilities_for(agent_type: Union[AgentType, str]) -> Tuple[str, ...]:
    resolved = resolve_agent_type(agent_type)
    if isinstance(resolved, AgentType):
        return BASE_CAPABILITIES + _TYPE_CAPABILITIES[resolved]
    return BASE_CAPABILITIES


def describe_agent_types() -> Dict[str, Dict[str, object]]:
    catalog: Dict[str, Dict[str, object]] = {}
    for agent_type in AgentType:
        name, description = _TYPE_DESCRIPTIONS[agent_type]
        capabilities: List[str] = list(capabilities_for(agent_type))
        catalog[agent_type.value] = {
            "name": name,
            "description": description,
            "capabilities": capabilities,
        }
    return catalog
