# chatedit/core/workspace.py
"""
ChatEdit 工作区抽象
所有读写都相对于单一的项目根目录进行。
"""

import fnmatch
import os
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import List, Optional, Sequence, Union

from .models import FileListing

DEFAULT_FILE_LIMIT = 1000
DEFAULT_EXCLUDE_PATTERNS = [
    "**/node_modules/**",
    ".git/**",
    ".chatedit/**",
]


class PathEscapeError(ValueError):
    """路径解析后落在项目根目录之外"""


class Workspace(ABC):
    """
    抽象基类，定义变更应用和文件上下文读取所需的文件系统接口。
    path 参数均为相对于根目录的路径。
    """

    @property
    @abstractmethod
    def root(self) -> Path:
        pass

    @abstractmethod
    def resolve(self, relative_path: str) -> Path:
        """
        把相对路径解析为根目录下的绝对路径。

        Raises:
            PathEscapeError: 绝对路径、``..`` 穿越或符号链接使结果离开根目录。
        """
        pass

    @abstractmethod
    def read(self, relative_path: str) -> bytes:
        """读取文件内容；文件不存在时抛出 FileNotFoundError"""
        pass

    @abstractmethod
    def write(self, relative_path: str, data: bytes) -> None:
        pass

    @abstractmethod
    def exists(self, relative_path: str) -> bool:
        pass

    @abstractmethod
    def is_dir(self, relative_path: str) -> bool:
        pass

    @abstractmethod
    def create_directory(self, relative_path: str) -> None:
        """创建单层目录（非递归）；父目录不存在时失败"""
        pass

    @abstractmethod
    def list_files(self, limit: int = DEFAULT_FILE_LIMIT,
                   exclude_patterns: Optional[Sequence[str]] = None) -> FileListing:
        pass

    def read_text(self, relative_path: str, encoding: str = "utf-8") -> str:
        return self.read(relative_path).decode(encoding, errors="replace")

    def relative(self, path: Path) -> str:
        """根目录下绝对路径 → POSIX 风格相对路径"""
        return PurePosixPath(*path.relative_to(self.root).parts).as_posix()


class LocalWorkspace(Workspace):
    """基于本地文件系统（pathlib）的工作区实现"""

    def __init__(self, root: Union[str, Path] = "."):
        self._root = Path(root).resolve()

    def __repr__(self) -> str:
        return f"LocalWorkspace({str(self._root)!r})"

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, relative_path: str) -> Path:
        if not relative_path or not str(relative_path).strip():
            raise PathEscapeError("Empty path.")
        candidate = Path(relative_path)
        if candidate.is_absolute() or candidate.drive:
            raise PathEscapeError(f"Absolute path not allowed: {relative_path}")
        try:
            resolved = (self._root / candidate).resolve()
        except (ValueError, RuntimeError) as e:
            # NUL 字节、符号链接循环等无法解析的路径
            raise PathEscapeError(f"Invalid path: {relative_path!r} ({e})")
        try:
            resolved.relative_to(self._root)
        except ValueError:
            raise PathEscapeError(f"Path escapes project root: {relative_path}")
        return resolved

    def read(self, relative_path: str) -> bytes:
        return self.resolve(relative_path).read_bytes()

    def write(self, relative_path: str, data: bytes) -> None:
        self.resolve(relative_path).write_bytes(data)

    def exists(self, relative_path: str) -> bool:
        return self.resolve(relative_path).exists()

    def is_dir(self, relative_path: str) -> bool:
        return self.resolve(relative_path).is_dir()

    def create_directory(self, relative_path: str) -> None:
        self.resolve(relative_path).mkdir()

    def list_files(self, limit: int = DEFAULT_FILE_LIMIT,
                   exclude_patterns: Optional[Sequence[str]] = None) -> FileListing:
        """列出根目录下的文件（相对路径，排序），最多 limit 个"""
        patterns = list(DEFAULT_EXCLUDE_PATTERNS if exclude_patterns is None else exclude_patterns)
        if not self._root.is_dir():
            return FileListing(files=[], error=f"Project root not found: {self._root}")
        files: List[str] = []
        try:
            for dirpath, dirnames, filenames in os.walk(self._root):
                dirnames.sort()
                base = Path(dirpath)
                # 剪掉被排除的目录，避免遍历 node_modules 之类的大目录
                dirnames[:] = [
                    d for d in dirnames
                    if not _is_excluded(self.relative(base / d) + "/", patterns)
                ]
                for name in sorted(filenames):
                    rel = self.relative(base / name)
                    if _is_excluded(rel, patterns):
                        continue
                    files.append(rel)
                    if len(files) >= limit:
                        return FileListing(files=sorted(files))
        except OSError as e:
            return FileListing(files=[], error=f"Error fetching files: {e}")
        return FileListing(files=sorted(files))


def _is_excluded(rel_path: str, patterns: Sequence[str]) -> bool:
    # "**/x/**" 也要匹配根目录下的 "x/..."
    for pattern in patterns:
        if fnmatch.fnmatch(rel_path, pattern):
            return True
        if pattern.startswith("**/") and fnmatch.fnmatch(rel_path, pattern[3:]):
            return True
    return False
