"""
Tool Registry — Central registry and invoker for agent-executable tools

Each tool is a self-describing, executable unit that the reasoning engine
can discover and the registry can invoke. Every call goes through:
1. Permission check (enabled flag, tenant/user lists, permission level)
2. Tool resolution
3. Parameter validation
4. Quota check (hourly/daily limits)
5. Timeout-guarded execution
6. Usage statistics update
"""
from typing import Dict, Any, List, Optional, Deque, Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from collections import deque
from enum import Enum
import asyncio
import re
import time
import traceback
import uuid

from agent_runtime.agent.context import ExecutionContext
from agent_runtime.agent.locks import ReadWriteLock
from agent_runtime.config import ToolManagerConfig
from agent_runtime.errors import (
    AgentRuntimeError,
    ExecutionTimeoutError,
    NotFoundError,
    PermissionDeniedError,
    ResourceLimitError,
    ValidationError,
)
from agent_runtime.logs import get_logger
from agent_runtime.models import PermissionLevel, ToolPermissions

logger = get_logger(__name__)

TOOL_NAME_PATTERN = re.compile(r"[A-Za-z0-9_-]+")
MAX_TOOL_NAME_LENGTH = 100
MAX_TOOL_DESCRIPTION_LENGTH = 1000

HOUR_SECONDS = 3600
DAY_SECONDS = 86400

_JSON_TYPES = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "object": (dict,),
    "array": (list, tuple),
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ToolCategory(str, Enum):
    """Categories for tool classification"""
    LLM = "llm"
    MATH = "math"
    SEARCH = "search"
    FILE_SYSTEM = "file_system"
    NETWORK = "network"
    SYSTEM = "system"
    CUSTOM = "custom"


@dataclass
class ToolResult:
    """Result returned by a tool execution"""
    success: bool
    data: Any = None
    error: Optional[str] = None
    message: Optional[str] = None
    execution_time_ms: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "data": self.data,
            "error": self.error,
            "message": self.message,
            "execution_time_ms": self.execution_time_ms,
        }


@dataclass
class ToolParameter:
    """Describes a single tool parameter"""
    name: str
    type: str  # "string", "integer", "number", "boolean", "object", "array"
    description: str
    required: bool = True
    default: Any = None
    enum: Optional[List[Any]] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None


@dataclass
class ToolMetadata:
    """Self-description of a tool"""
    name: str
    description: str
    parameters_schema: Dict[str, Any] = field(default_factory=dict)
    category: str = ToolCategory.CUSTOM.value
    requires_permission: bool = False
    version: str = "1.0.0"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters_schema": self.parameters_schema,
            "category": self.category,
            "requires_permission": self.requires_permission,
            "version": self.version,
        }


@dataclass
class ToolUsageStats:
    """Running aggregate of a tool's calls"""
    tool_name: str
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    avg_execution_time_ms: float = 0.0
    min_execution_time_ms: Optional[int] = None
    max_execution_time_ms: int = 0
    last_called_at: Optional[datetime] = None

    def record(self, success: bool, execution_time_ms: int) -> None:
        self.total_calls += 1
        if success:
            self.successful_calls += 1
        else:
            self.failed_calls += 1

        n = self.total_calls
        self.avg_execution_time_ms = self.avg_execution_time_ms * (n - 1) / n + execution_time_ms / n

        if self.min_execution_time_ms is None or execution_time_ms < self.min_execution_time_ms:
            self.min_execution_time_ms = execution_time_ms
        if execution_time_ms > self.max_execution_time_ms:
            self.max_execution_time_ms = execution_time_ms

        self.last_called_at = _now()

    def copy(self) -> "ToolUsageStats":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool_name": self.tool_name,
            "total_calls": self.total_calls,
            "successful_calls": self.successful_calls,
            "failed_calls": self.failed_calls,
            "avg_execution_time_ms": self.avg_execution_time_ms,
            "min_execution_time_ms": self.min_execution_time_ms,
            "max_execution_time_ms": self.max_execution_time_ms,
            "last_called_at": self.last_called_at.isoformat() if self.last_called_at else None,
        }


@dataclass
class ToolCallRequest:
    """A request to invoke one tool"""
    tool_name: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    context: ExecutionContext = field(default_factory=ExecutionContext)
    call_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timeout_seconds: Optional[float] = None


@dataclass
class ToolCallResponse:
    """Outcome of one tool invocation"""
    call_id: str
    tool_name: str
    result: ToolResult
    started_at: datetime
    completed_at: datetime
    execution_time_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "call_id": self.call_id,
            "tool_name": self.tool_name,
            "result": self.result.to_dict(),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "execution_time_ms": self.execution_time_ms,
        }


@dataclass
class ToolRegistration:
    """A registered tool as reported by list_tools()"""
    name: str
    metadata: ToolMetadata
    registered_at: datetime
    permissions: ToolPermissions
    usage_stats: ToolUsageStats

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "metadata": self.metadata.to_dict(),
            "registered_at": self.registered_at.isoformat(),
            "permissions": self.permissions.model_dump(mode="json"),
            "usage_stats": self.usage_stats.to_dict(),
        }


@dataclass
class ToolListResponse:
    tools: List[ToolRegistration]
    total: int
    enabled: int
    disabled: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tools": [t.to_dict() for t in self.tools],
            "total": self.total,
            "enabled": self.enabled,
            "disabled": self.disabled,
        }


class Tool:
    """
    Base class for all agent tools.

    Subclass this and implement `execute()` to create a new tool.
    The reasoning engine uses `name` and `description` to decide when to
    invoke the tool; the registry uses `validate_parameters()` before every
    call. The default validation checks declared parameters (presence, JSON
    type, enum, bounds); override it for cross-parameter rules.
    """

    def __init__(
        self,
        name: str,
        description: str,
        category: ToolCategory = ToolCategory.CUSTOM,
        parameters: Optional[List[ToolParameter]] = None,
        requires_permission: bool = False,
        version: str = "1.0.0",
    ):
        self.name = name
        self.description = description
        self.category = category
        self.parameters = parameters or []
        self.requires_permission = requires_permission
        self.version = version

    async def execute(self, parameters: Dict[str, Any], context: ExecutionContext) -> ToolResult:
        """
        Execute the tool with given parameters.
        Must be overridden by subclasses.
        """
        raise NotImplementedError(f"Tool '{self.name}' must implement execute()")

    def metadata(self) -> ToolMetadata:
        return ToolMetadata(
            name=self.name,
            description=self.description,
            parameters_schema=self.to_schema(),
            category=self.category.value,
            requires_permission=self.requires_permission,
            version=self.version,
        )

    def validate_parameters(self, parameters: Dict[str, Any]) -> None:
        """Raise ValidationError if parameters don't match the declared schema"""
        for p in self.parameters:
            if p.name not in parameters or parameters[p.name] is None:
                if p.required:
                    raise ValidationError(
                        f"Missing required parameter: {p.name}",
                        {"tool": self.name, "parameter": p.name},
                    )
                continue

            value = parameters[p.name]
            expected = _JSON_TYPES.get(p.type)
            # bool is an int subclass; only accept it where a boolean is declared
            if expected and (
                not isinstance(value, expected)
                or (isinstance(value, bool) and p.type != "boolean")
            ):
                raise ValidationError(
                    f"Parameter '{p.name}' must be of type {p.type}",
                    {"tool": self.name, "parameter": p.name},
                )
            if p.enum is not None and value not in p.enum:
                raise ValidationError(
                    f"Parameter '{p.name}' must be one of {p.enum}",
                    {"tool": self.name, "parameter": p.name},
                )
            if p.minimum is not None and value < p.minimum:
                raise ValidationError(
                    f"Parameter '{p.name}' must be >= {p.minimum}",
                    {"tool": self.name, "parameter": p.name},
                )
            if p.maximum is not None and value > p.maximum:
                raise ValidationError(
                    f"Parameter '{p.name}' must be <= {p.maximum}",
                    {"tool": self.name, "parameter": p.name},
                )

    def to_schema(self) -> Dict[str, Any]:
        """Export declared parameters as a JSON schema object"""
        params = {}
        required = []
        for p in self.parameters:
            param_schema = {
                "type": p.type,
                "description": p.description,
            }
            if p.enum:
                param_schema["enum"] = p.enum
            if p.default is not None:
                param_schema["default"] = p.default
            if p.minimum is not None:
                param_schema["minimum"] = p.minimum
            if p.maximum is not None:
                param_schema["maximum"] = p.maximum
            params[p.name] = param_schema
            if p.required:
                required.append(p.name)

        return {
            "type": "object",
            "properties": params,
            "required": required,
        }


class ToolRegistry:
    """
    Registry, permission gate and invoker for tools.

    The tool map, the permission table and the usage-stats table each have
    their own lock. A call holds the tool-map read lock only long enough to
    resolve the tool; the (possibly slow) execution runs without any lock.

    Usage:
        registry = ToolRegistry()
        await registry.register(MyTool())
        response = await registry.call(ToolCallRequest("my_tool", {"x": 1}))
    """

    def __init__(self, config: Optional[ToolManagerConfig] = None):
        self.config = config or ToolManagerConfig()
        self._tools: Dict[str, Tool] = {}
        self._metadata: Dict[str, ToolMetadata] = {}
        self._registered_at: Dict[str, datetime] = {}
        self._permissions: Dict[str, ToolPermissions] = {}
        self._usage_stats: Dict[str, ToolUsageStats] = {}
        self._call_log: Dict[str, Deque[float]] = {}

        self._tools_lock = ReadWriteLock()
        self._permissions_lock = ReadWriteLock()
        self._stats_lock = ReadWriteLock()
        self._quota_lock = asyncio.Lock()
        self._call_slots = asyncio.Semaphore(max(1, self.config.max_concurrent_calls))

    # ─── Registration ────────────────────────────────────────────────────────

    async def register(self, tool: Tool, permissions: Optional[ToolPermissions] = None) -> None:
        """Register a tool, with default-enabled permissions unless given"""
        metadata = tool.metadata()
        self._validate_metadata(metadata)
        name = metadata.name

        async with self._tools_lock.write():
            if name in self._tools:
                raise ValidationError(f"Tool '{name}' is already registered", {"tool": name})
            self._tools[name] = tool
            self._metadata[name] = metadata
            self._registered_at[name] = _now()

        if self.config.enable_usage_stats:
            async with self._stats_lock.write():
                self._usage_stats.setdefault(name, ToolUsageStats(tool_name=name))

        async with self._permissions_lock.write():
            if permissions is None:
                permissions = ToolPermissions(tool_name=name)
            else:
                permissions = permissions.model_copy(update={"tool_name": name})
            self._permissions[name] = permissions

        logger.info(f"🔧 Registered tool: {name} [{metadata.category}]")

    async def unregister(self, name: str) -> None:
        """Remove a tool. Usage statistics are kept for history."""
        async with self._tools_lock.write():
            if name not in self._tools:
                raise NotFoundError(f"Tool '{name}' not found", {"tool": name})
            del self._tools[name]
            self._metadata.pop(name, None)
            self._registered_at.pop(name, None)

        async with self._permissions_lock.write():
            self._permissions.pop(name, None)

        async with self._quota_lock:
            self._call_log.pop(name, None)

        logger.info(f"Unregistered tool: {name}")

    # ─── Lookup ──────────────────────────────────────────────────────────────

    async def get(self, name: str) -> Optional[Tool]:
        async with self._tools_lock.read():
            return self._tools.get(name)

    async def count(self) -> int:
        async with self._tools_lock.read():
            return len(self._tools)

    async def list_names(self) -> List[str]:
        async with self._tools_lock.read():
            return list(self._tools.keys())

    async def get_tool_metadata(self, name: str) -> ToolMetadata:
        async with self._tools_lock.read():
            metadata = self._metadata.get(name)
        if metadata is None:
            raise NotFoundError(f"Tool '{name}' not found", {"tool": name})
        return metadata

    async def catalog(self, names: Iterable[str]) -> List[ToolMetadata]:
        """Metadata for the given tool names, in order, skipping unknown ones"""
        async with self._tools_lock.read():
            return [self._metadata[n] for n in names if n in self._metadata]

    async def list_tools(self) -> ToolListResponse:
        async with self._tools_lock.read():
            entries = [
                (name, self._metadata[name], self._registered_at[name])
                for name in self._tools
            ]
        async with self._permissions_lock.read():
            permissions = dict(self._permissions)
        async with self._stats_lock.read():
            stats = {name: s.copy() for name, s in self._usage_stats.items()}

        registrations = []
        enabled = 0
        for name, metadata, registered_at in entries:
            tool_permissions = permissions.get(name) or ToolPermissions(tool_name=name)
            if tool_permissions.enabled:
                enabled += 1
            registrations.append(ToolRegistration(
                name=name,
                metadata=metadata,
                registered_at=registered_at,
                permissions=tool_permissions,
                usage_stats=stats.get(name) or ToolUsageStats(tool_name=name),
            ))

        return ToolListResponse(
            tools=registrations,
            total=len(registrations),
            enabled=enabled,
            disabled=len(registrations) - enabled,
        )

    # ─── Permissions & stats ─────────────────────────────────────────────────

    async def get_permissions(self, name: str) -> ToolPermissions:
        async with self._permissions_lock.read():
            permissions = self._permissions.get(name)
        if permissions is None:
            raise NotFoundError(f"Tool '{name}' not found", {"tool": name})
        return permissions

    async def update_permissions(self, name: str, permissions: ToolPermissions) -> None:
        async with self._permissions_lock.write():
            if name not in self._permissions:
                raise NotFoundError(f"Tool '{name}' not found", {"tool": name})
            self._permissions[name] = permissions.model_copy(update={"tool_name": name})
        logger.info(f"Updated permissions for tool: {name}")

    async def get_usage_stats(self, name: str) -> ToolUsageStats:
        async with self._stats_lock.read():
            stats = self._usage_stats.get(name)
            if stats is None:
                raise NotFoundError(f"No usage stats for tool '{name}'", {"tool": name})
            return stats.copy()

    async def get_all_usage_stats(self) -> List[ToolUsageStats]:
        async with self._stats_lock.read():
            return [s.copy() for s in self._usage_stats.values()]

    # ─── Invocation ──────────────────────────────────────────────────────────

    async def call(self, request: ToolCallRequest) -> ToolCallResponse:
        """
        Invoke a tool.

        Permission, lookup, validation and quota failures raise. Once the
        tool runs, a timeout or an exception inside it is returned as a
        failed ToolResult, never raised.
        """
        started_at = _now()
        name = request.tool_name
        logger.debug(f"Calling tool: {name} (call_id={request.call_id})")

        if self.config.enable_permission_check:
            await self._check_permissions(request)

        async with self._tools_lock.read():
            tool = self._tools.get(name)
        if tool is None:
            raise NotFoundError(f"Tool '{name}' not found", {"tool": name})

        try:
            tool.validate_parameters(request.parameters)
        except AgentRuntimeError:
            raise
        except Exception as e:
            raise ValidationError(f"Invalid parameters for '{name}': {e}", {"tool": name}) from e

        if self.config.enable_permission_check:
            await self._reserve_quota(name)

        timeout = self.config.default_timeout_seconds if request.timeout_seconds is None else request.timeout_seconds
        async with self._call_slots:
            start = time.perf_counter()
            result = await self._execute(tool, request, timeout)
            execution_time_ms = int((time.perf_counter() - start) * 1000)
        result.execution_time_ms = execution_time_ms

        if self.config.enable_usage_stats:
            async with self._stats_lock.write():
                stats = self._usage_stats.setdefault(name, ToolUsageStats(tool_name=name))
                stats.record(result.success, execution_time_ms)

        self._log_call(name, result)

        return ToolCallResponse(
            call_id=request.call_id,
            tool_name=name,
            result=result,
            started_at=started_at,
            completed_at=_now(),
            execution_time_ms=execution_time_ms,
        )

    async def _execute(self, tool: Tool, request: ToolCallRequest, timeout: float) -> ToolResult:
        try:
            result = await asyncio.wait_for(
                tool.execute(dict(request.parameters), request.context),
                timeout=timeout,
            )
            if not isinstance(result, ToolResult):
                result = ToolResult(success=True, data=result)
            return result
        except asyncio.TimeoutError:
            error = ExecutionTimeoutError(f"Tool '{tool.name}'", timeout, {"call_id": request.call_id})
            return ToolResult(
                success=False,
                error=error.message,
                message="Tool execution timed out",
                metadata={"error_kind": error.kind.value},
            )
        except Exception as e:
            logger.error(f"Tool execution failed: {tool.name} - {type(e).__name__}: {e}")
            return ToolResult(
                success=False,
                error=f"{type(e).__name__}: {e}",
                message="Tool execution failed",
                metadata={"traceback": traceback.format_exc()},
            )

    async def _check_permissions(self, request: ToolCallRequest) -> None:
        name = request.tool_name
        async with self._permissions_lock.read():
            permissions = self._permissions.get(name)
        if permissions is None:
            raise NotFoundError(f"No permission record for tool '{name}'", {"tool": name})

        if not permissions.enabled:
            raise PermissionDeniedError(f"Tool '{name}' is disabled", {"tool": name})

        context = request.context
        tenant_id = context.tenant_id
        if tenant_id is not None:
            if permissions.allowed_tenants and tenant_id not in permissions.allowed_tenants:
                raise PermissionDeniedError(
                    f"Tenant is not allowed to use tool '{name}'",
                    {"tool": name, "tenant_id": tenant_id},
                )
            if tenant_id in permissions.blocked_tenants:
                raise PermissionDeniedError(
                    f"Tenant is blocked from tool '{name}'",
                    {"tool": name, "tenant_id": tenant_id},
                )

        user_id = context.user_id
        if user_id is not None:
            if permissions.allowed_users and user_id not in permissions.allowed_users:
                raise PermissionDeniedError(
                    f"User is not allowed to use tool '{name}'",
                    {"tool": name, "user_id": user_id},
                )
            if user_id in permissions.blocked_users:
                raise PermissionDeniedError(
                    f"User is blocked from tool '{name}'",
                    {"tool": name, "user_id": user_id},
                )

        raw_level = context.context_variables.get("permission_level", PermissionLevel.BASIC)
        try:
            level = PermissionLevel(raw_level)
        except ValueError:
            raise ValidationError(f"Unknown permission level: {raw_level}", {"tool": name})
        if level.rank < permissions.required_permission_level.rank:
            raise PermissionDeniedError(
                f"Tool '{name}' requires permission level "
                f"'{permissions.required_permission_level.value}'",
                {"tool": name, "permission_level": level.value},
            )

    async def _reserve_quota(self, name: str) -> None:
        """Enforce hourly/daily call limits; record the call when admitted"""
        async with self._permissions_lock.read():
            permissions = self._permissions.get(name)
        if permissions is None or (permissions.hourly_limit is None and permissions.daily_limit is None):
            return

        async with self._quota_lock:
            now = time.monotonic()
            calls = self._call_log.setdefault(name, deque())
            while calls and now - calls[0] >= DAY_SECONDS:
                calls.popleft()

            if permissions.daily_limit is not None and len(calls) >= permissions.daily_limit:
                raise ResourceLimitError(
                    f"Daily call limit reached for tool '{name}'",
                    {"tool": name, "daily_limit": permissions.daily_limit},
                )
            if permissions.hourly_limit is not None:
                last_hour = sum(1 for t in calls if now - t < HOUR_SECONDS)
                if last_hour >= permissions.hourly_limit:
                    raise ResourceLimitError(
                        f"Hourly call limit reached for tool '{name}'",
                        {"tool": name, "hourly_limit": permissions.hourly_limit},
                    )
            calls.append(now)

    def _log_call(self, name: str, result: ToolResult) -> None:
        level = self.config.log_level.lower()
        if level == "debug":
            logger.debug(f"Tool call done: {name} - success: {result.success} - {result.execution_time_ms}ms")
        elif level == "info":
            logger.info(f"Tool call: {name} - success: {result.success} - {result.execution_time_ms}ms")
        elif level in ("warn", "warning") and not result.success:
            logger.warning(f"Tool call failed: {name} - error: {result.error}")
        elif level == "error" and not result.success:
            logger.error(f"Tool call failed: {name} - error: {result.error}")

    @staticmethod
    def _validate_metadata(metadata: ToolMetadata) -> None:
        name = metadata.name or ""
        if not name:
            raise ValidationError("Tool name must not be empty")
        if len(name) > MAX_TOOL_NAME_LENGTH:
            raise ValidationError(
                f"Tool name must be at most {MAX_TOOL_NAME_LENGTH} characters",
                {"tool": name[:MAX_TOOL_NAME_LENGTH]},
            )
        if not TOOL_NAME_PATTERN.fullmatch(name):
            raise ValidationError(
                "Tool name may only contain letters, digits, '_' and '-'",
                {"tool": name},
            )
        if len(metadata.description or "") > MAX_TOOL_DESCRIPTION_LENGTH:
            raise ValidationError(
                f"Tool description must be at most {MAX_TOOL_DESCRIPTION_LENGTH} characters",
                {"tool": name},
            )
