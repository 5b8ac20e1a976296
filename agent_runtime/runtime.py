"""
Agent runtime — wires tools, reasoning and agents together

    runtime = await create_runtime()
    agent_id = await runtime.create_agent(AgentConfig(name="math", available_tools=["calculator"]))
    payload = await runtime.execute_task(agent_id, AgentTask(description="What is 2 ** 10?"))
"""
from typing import Any, Dict, List, Optional

from agent_runtime.agent.executor import AgentRegistry
from agent_runtime.agent.reasoning import ActionParser, ReasoningEngine
from agent_runtime.agent.tool_registry import Tool, ToolRegistry
from agent_runtime.agent.tools import CalculatorTool, LLMGenerateTool
from agent_runtime.config import AgentRuntimeConfig, Settings, ToolManagerConfig, settings as default_settings
from agent_runtime.logs import configure_logging, get_logger
from agent_runtime.models import AgentConfig, AgentState, AgentTask, ToolPermissions
from agent_runtime.providers import get_language_model_client
from agent_runtime.providers.client import LanguageModelClient

logger = get_logger(__name__)


class AgentRuntime:
    """Facade over the tool registry, reasoning engine and agent registry"""

    def __init__(
        self,
        llm_client: LanguageModelClient,
        config: Optional[AgentRuntimeConfig] = None,
        tool_config: Optional[ToolManagerConfig] = None,
        action_parser: Optional[ActionParser] = None,
    ):
        self.config = config or AgentRuntimeConfig()
        self.llm_client = llm_client
        self.tools = ToolRegistry(tool_config)
        self.engine = ReasoningEngine(llm_client, self.tools, action_parser=action_parser)
        self.agents = AgentRegistry(self.config, self.engine, self.tools)

    async def register_tool(self, tool: Tool, permissions: Optional[ToolPermissions] = None) -> None:
        await self.tools.register(tool, permissions)

    async def register_builtin_tools(self) -> None:
        """Register calculator and llm_generate"""
        await self.tools.register(CalculatorTool())
        await self.tools.register(LLMGenerateTool(self.llm_client))

    async def create_agent(self, config: AgentConfig) -> str:
        return await self.agents.create_agent(config)

    async def execute_task(self, agent_id: str, task: AgentTask) -> Dict[str, Any]:
        return await self.agents.execute_task(agent_id, task)

    async def get_agent_state(self, agent_id: str) -> AgentState:
        return await self.agents.get_state(agent_id)

    async def get_agent(self, agent_id: str) -> Dict[str, Any]:
        return await self.agents.get_agent(agent_id)

    async def list_agents(self) -> List[Dict[str, Any]]:
        return await self.agents.list_agents()

    async def stop_agent(self, agent_id: str) -> None:
        await self.agents.stop(agent_id)

    async def cleanup_inactive_agents(self, idle_timeout: Optional[float] = None) -> int:
        return await self.agents.cleanup_inactive(idle_timeout)


async def create_runtime(
    settings: Optional[Settings] = None,
    llm_client: Optional[LanguageModelClient] = None,
    register_builtin_tools: bool = True,
) -> AgentRuntime:
    """
    Build a runtime from settings.

    Args:
        settings: Settings to read limits and provider from (default: environment)
        llm_client: Client to use instead of the configured provider
        register_builtin_tools: Register calculator and llm_generate

    Returns:
        A ready AgentRuntime
    """
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    runtime = AgentRuntime(
        llm_client or get_language_model_client(settings=settings),
        config=AgentRuntimeConfig.from_settings(settings),
        tool_config=ToolManagerConfig.from_settings(settings),
    )
    if register_builtin_tools:
        await runtime.register_builtin_tools()

    logger.info(
        f"✅ Agent runtime ready (max agents: {runtime.config.max_concurrent_agents}, "
        f"tools: {await runtime.tools.count()})"
    )
    return runtime
