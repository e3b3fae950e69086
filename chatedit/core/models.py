# chatedit/core/models.py
"""
定义 ChatEdit 核心数据结构。
这些模型在对话规范化、AI 响应解析和文件变更应用之间传递数据。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Role(Enum):
    """对话中一条消息的角色（封闭集合）"""
    USER = "user"
    MODEL = "model"
    SYSTEM = "system"  # 仅用于界面内部注释，永不发送给 LLM

    @classmethod
    def parse(cls, value: Any) -> Optional["Role"]:
        """把线上格式的 role 字符串转换为 Role；未知角色返回 None"""
        if isinstance(value, Role):
            return value
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower()
        if normalized == "assistant":
            return cls.MODEL
        for member in cls:
            if member.value == normalized:
                return member
        return None


@dataclass
class ChatTurn:
    """一条带角色的对话消息"""
    role: Role
    segments: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.segments)

    @classmethod
    def user(cls, text: str) -> "ChatTurn":
        return cls(Role.USER, [text])

    @classmethod
    def model(cls, text: str) -> "ChatTurn":
        return cls(Role.MODEL, [text])

    @classmethod
    def system(cls, text: str) -> "ChatTurn":
        return cls(Role.SYSTEM, [text])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["ChatTurn"]:
        """
        从字典创建 ChatTurn。
        支持 {"role": ..., "parts": [{"text": ...}]} 以及 {"role": ..., "segments": [...]}。
        角色无法识别时返回 None。
        """
        role = Role.parse(data.get("role"))
        if role is None:
            return None
        segments: List[str] = []
        raw_parts = data.get("parts")
        if raw_parts is None:
            raw_parts = data.get("segments", [])
        if isinstance(raw_parts, str):
            raw_parts = [raw_parts]
        for part in raw_parts or []:
            if isinstance(part, dict):
                text = part.get("text")
                if isinstance(text, str):
                    segments.append(text)
            elif isinstance(part, str):
                segments.append(part)
        return cls(role, segments)


@dataclass
class FileEdit:
    """从响应中解析出的整文件替换"""
    path: str
    content: str


class ErrorKind(Enum):
    PATH_ESCAPE = "path_escape"
    WRITE_FAILURE = "write_failure"


@dataclass
class ApplyResult:
    """单个 FileEdit 的应用结果"""
    path: str
    ok: bool
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    created_dirs: List[str] = field(default_factory=list)


@dataclass
class ExtractionResult:
    """
    一次响应解析的结果。

    响应中没有文件块是合法结果（对话式回答、无需修改或澄清问题）；
    unmatched_fences 记录未能构成完整块的开头标记，用于区分“格式损坏”。
    """
    edits: List[FileEdit] = field(default_factory=list)
    unmatched_fences: int = 0
    acknowledges_no_changes: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.edits

    @property
    def is_malformed(self) -> bool:
        return self.is_empty and self.unmatched_fences > 0


@dataclass
class ChatResult:
    """一轮对话的最终结果，text 为 LLM 原始回复或错误信息"""
    success: bool
    text: str
    edits: List[FileEdit] = field(default_factory=list)
    apply_results: List[ApplyResult] = field(default_factory=list)

    @property
    def failed_results(self) -> List[ApplyResult]:
        return [r for r in self.apply_results if not r.ok]


@dataclass
class FileListing:
    files: List[str] = field(default_factory=list)
    error: Optional[str] = None
