"""
脚本动作注册表:
- 以名称注册动作函数，绑定可选的 params_model（Pydantic v2）
- validate_spec() 在启动浏览器之前校验脚本步骤
- describe() 给 doctor 命令列出每个动作及其参数
"""
# @file purpose: Provide action registry, metadata, and spec validation.

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel

from .action import ActionSpec

logger = logging.getLogger(__name__)

# 动作函数签名（异步）: fn(page, params) -> ActionResult
ActionFn = Callable[..., Awaitable[Any]]


@dataclass(frozen=True)
class ActionMeta:
    """Name, bound params model and a one-line summary taken from the docstring."""

    name: str
    params_model: Optional[Type[BaseModel]] = None
    summary: str = ""

    @property
    def fields(self) -> List[str]:
        """Param names; optional ones end with '?'."""
        if self.params_model is None:
            return []
        return [
            name if info.is_required() else f"{name}?"
            for name, info in self.params_model.model_fields.items()
        ]


_REGISTRY: Dict[str, ActionFn] = {}
_META: Dict[str, ActionMeta] = {}


def _summary(fn: ActionFn) -> str:
    doc = (fn.__doc__ or "").strip()
    return doc.splitlines()[0] if doc else ""


def action(
    name: str, *, params_model: Optional[Type[BaseModel]] = None
) -> Callable[[ActionFn], ActionFn]:
    """
    装饰器：注册动作及其参数模型。
        @action("click", params_model=ClickParams)
        async def click(page, params): ...
    """

    def deco(fn: ActionFn) -> ActionFn:
        register(name, fn, params_model=params_model)
        return fn

    return deco


def register(name: str, fn: ActionFn, *, params_model: Optional[Type[BaseModel]] = None) -> None:
    if name in _REGISTRY and _REGISTRY[name] is not fn:
        logger.warning("action %r re-registered; the previous implementation is replaced", name)
    _REGISTRY[name] = fn
    _META[name] = ActionMeta(name=name, params_model=params_model, summary=_summary(fn))


def unregister(name: str) -> None:
    _REGISTRY.pop(name, None)
    _META.pop(name, None)


def get_action(name: str) -> ActionFn:
    try:
        return _REGISTRY[name]
    except KeyError as e:
        raise KeyError(f"Action not registered: {name}") from e


def get_meta(name: str) -> ActionMeta:
    try:
        return _META[name]
    except KeyError as e:
        raise KeyError(f"Action not registered (no metadata): {name}") from e


def list_actions() -> Dict[str, ActionMeta]:
    return dict(_META)


def describe() -> List[Tuple[str, str, str]]:
    """(name, params model, fields) rows sorted by name."""
    rows = []
    for name in sorted(_META):
        meta = get_meta(name)
        model = meta.params_model.__name__ if meta.params_model is not None else "-"
        rows.append((name, model, ", ".join(meta.fields) or "-"))
    return rows


def validate_spec(spec: ActionSpec) -> Tuple[ActionMeta, Optional[BaseModel]]:
    """
    执行前校验一个步骤:
    1) 动作必须已注册（否则 KeyError）
    2) 有 params_model 时按模型校验 args（否则 ValidationError）
    3) 返回 (ActionMeta, 解析后的参数 | None)
    """
    meta = get_meta(spec.name)
    if meta.params_model is None:
        return meta, None
    return meta, meta.params_model.model_validate(spec.args)
