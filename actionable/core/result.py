"""
结构化的动作返回值，向上层（Runner/CLI）汇报执行结果。
"""
# @file purpose: Define ActionResult model for action outputs.

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class ActionResult(BaseModel):
    """
    统一的动作返回值:
    - ok: 是否成功
    - extracted_content: 步骤读取到的文本（extract_text），否则为 None
    - include_in_memory: 调用方是否需要保留 extracted_content
    - meta: 诊断信息（selector、url、选中的值等）
    """

    ok: bool = True
    extracted_content: Optional[str] = None
    include_in_memory: bool = False
    meta: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def success(cls, **meta: Any) -> "ActionResult":
        return cls(ok=True, meta=meta)
