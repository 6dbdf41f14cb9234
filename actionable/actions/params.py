"""
脚本步骤的参数模型（Pydantic v2）。
在“脚本 -> 执行器”边界拒绝非法数据，浏览器启动之前即可校验，
因此 `actionable validate` 可离线检查脚本。

带 selector 的步骤都接受 `timeout_ms`（None -> 页面默认值，0 -> 不超时），
动作支持时还接受 `force`。
"""
# @file purpose: Define parameter schemas for script actions using Pydantic v2.

from typing import Annotated, Literal

from pydantic import AnyUrl, BaseModel, ConfigDict, Field, StringConstraints

from ..engine.state import SelectorState
from ..io.driver import SelectOption

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
TimeoutMs = Annotated[float, Field(ge=0)]
TextLimited = Annotated[str, Field(max_length=4000)]


class StepParams(BaseModel):
    model_config = ConfigDict(extra="forbid")


class OpenUrlParams(StepParams):
    """Parameters for open_url action."""

    url: AnyUrl
    timeout_ms: TimeoutMs | None = None


class SelectorParams(StepParams):
    selector: NonEmptyStr
    has_text: str | None = None
    timeout_ms: TimeoutMs | None = None


class WaitForParams(SelectorParams):
    """Parameters for wait_for action."""

    state: SelectorState = SelectorState.VISIBLE


class ClickParams(SelectorParams):
    """Parameters for click / dblclick / hover / tap."""

    force: bool = False
    button: Literal["left", "right", "middle"] = "left"


class FillParams(SelectorParams):
    """Parameters for fill action."""

    text: TextLimited
    force: bool = False


class TypeParams(SelectorParams):
    """Parameters for type (press_sequentially) action."""

    text: TextLimited
    delay_ms: TimeoutMs = 0


class PressParams(SelectorParams):
    key: NonEmptyStr


class CheckParams(SelectorParams):
    """Check or uncheck a checkbox/radio (no-op when already in that state)."""

    force: bool = False


class SelectOptionParams(SelectorParams):
    """Plain strings match an option's value or label."""

    values: list[str | SelectOption] = Field(default_factory=list)


class SetInputFilesParams(SelectorParams):
    """Local paths; an empty list clears the input."""

    files: list[str] = Field(default_factory=list)


class ExtractTextParams(SelectorParams):
    """Parameters for extract_text action."""

    inner: bool = False


class SnapshotParams(StepParams):
    """Take a screenshot (default full page)."""

    path: str = Field(..., description="Where to save PNG file")
    full_page: bool = True
