"""
项目级异常类型，统一错误语义与捕获边界。
- ActionableError: 所有自定义异常的基类
- ActionExecutionError: 动作执行失败（携带 action/selector/details）
- TimeoutError: 等待超过 deadline（与内置 TimeoutError 区分）
- StrictModeViolation / InvalidElementType / DetachedElementError: 逻辑错误，不重试
- ElementNotActionable: force 动作无法满足前置条件
- ProtocolError: 驱动调用本身失败或会话已断开

调用方按异常类型分支，不解析 message。
"""
# @file purpose: Define error taxonomy for actionable.

from __future__ import annotations

from enum import Enum
from typing import Any


class ActionableError(Exception):
    """Base class for all custom errors in actionable."""


class ActionExecutionError(ActionableError):
    """
    Raised when an action fails to execute.
    统一封装上下文（action/selector/url/details），便于 CLI 和 Runner 打印一致的诊断信息。
    """

    def __init__(
        self,
        action: str,
        message: str,
        *,
        selector: str | None = None,
        url: str | None = None,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.action: str = action
        self.selector: str | None = selector
        self.url: str | None = url
        self.details: dict[str, Any] = details or {}
        self.cause: BaseException | None = cause

    @property
    def message(self) -> str:
        return super().__str__()

    def __str__(self) -> str:
        parts = [f"[{self.action}] {self.message}"]
        if self.selector:
            parts.append(f"selector={self.selector}")
        if self.url:
            parts.append(f"url={self.url}")
        if self.details:
            kv = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            parts.append(f"details={{ {kv} }}")
        return " | ".join(parts)


class TimeoutError(ActionExecutionError):  # noqa: A001
    """Deadline exceeded while waiting for actionability or navigation."""


class StrictModeViolation(ActionExecutionError):
    """A single-target operation resolved to more than one element."""

    def __init__(self, action: str, count: int, *, selector: str | None = None) -> None:
        super().__init__(
            action,
            f"strict mode violation: selector resolved to {count} elements",
            selector=selector,
            details={"count": count},
        )
        self.count = count


class NotActionableReason(str, Enum):
    NOT_ATTACHED = "not-attached"
    NOT_VISIBLE = "not-visible"
    NOT_STABLE = "not-stable"
    OBSCURED = "obscured"
    DISABLED = "disabled"
    NOT_EDITABLE = "not-editable"


class ElementNotActionable(ActionExecutionError):
    """An element cannot receive the action; `reason` names the failed predicate."""

    def __init__(
        self,
        action: str,
        reason: NotActionableReason,
        *,
        selector: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            action,
            f"element is not actionable: {reason.value}",
            selector=selector,
            details=details,
        )
        self.reason = reason


class InvalidElementType(ActionExecutionError):
    """The element kind does not support the action (e.g. check() on a <div>)."""


class DetachedElementError(ActionExecutionError):
    """The element was removed from the document while the action was running."""

    def __init__(self, action: str, *, selector: str | None = None) -> None:
        super().__init__(action, "element is not attached to the DOM", selector=selector)


class ProtocolError(ActionExecutionError):
    """The underlying driver call failed or the session was closed."""
