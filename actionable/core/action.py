"""
脚本步骤的数据契约：ActionSpec 指定已注册的动作名，并携带原始 args；
args 由注册表按绑定的 params_model 校验。
"""
# @file purpose: Define the script step contract.

from typing import Any

from pydantic import BaseModel, Field


class ActionSpec(BaseModel):
    name: str = Field(..., description="Registered action name.")
    args: dict[str, Any] = Field(
        default_factory=dict, description="Parameters for the action, validated by the registry."
    )
