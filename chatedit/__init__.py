"""
ChatEdit - 通过与 LLM 对话来修改代码库。
"""

from .core.applier import ChangeApplicator, apply_edits
from .core.extractor import BlockExtractor, RegexBlockExtractor, parse_response
from .core.models import ApplyResult, ChatResult, ChatTurn, ErrorKind, FileEdit, Role
from .core.normalizer import normalize_history
from .core.session import EditSession

__version__ = "0.1.0"

__all__ = [
    'EditSession', 'normalize_history', 'parse_response',
    'BlockExtractor', 'RegexBlockExtractor', 'ChangeApplicator', 'apply_edits',
    'ChatTurn', 'Role', 'FileEdit', 'ApplyResult', 'ErrorKind', 'ChatResult',
]
