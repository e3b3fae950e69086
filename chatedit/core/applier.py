# chatedit/core/applier.py
"""
变更应用器：把解析出的 FileEdit 依次写入项目目录。

- 严格按解析顺序逐个应用，后面的修改可能依赖前面已写入的文件/目录；
- 单个文件失败只记录在该文件的 ApplyResult 中，不会中断整批修改；
- 没有事务，也没有回滚。
"""

from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from .models import ApplyResult, ErrorKind, FileEdit
from .workspace import LocalWorkspace, PathEscapeError, Workspace

StatusCallback = Callable[[str], None]


class ChangeApplicator:
    """
    ChangeApplicator 负责把整文件替换写入工作区。
    """

    def __init__(self, workspace: Workspace, on_status: Optional[StatusCallback] = None):
        """
        Args:
            workspace (Workspace): 目标工作区，所有路径都相对于它的根目录。
            on_status (Callable[[str], None], optional): 进度消息回调。
        """
        self.workspace = workspace
        self.on_status = on_status

    def _status(self, message: str) -> None:
        if self.on_status:
            self.on_status(message)

    def apply(self, edits: Iterable[FileEdit]) -> List[ApplyResult]:
        """
        应用一批修改，返回与输入顺序一致的结果列表。
        同一路径出现多次时按顺序写入，最后一次生效。
        """
        return [self.apply_one(edit) for edit in edits]

    def apply_one(self, edit: FileEdit) -> ApplyResult:
        try:
            target = self.workspace.resolve(edit.path)
        except PathEscapeError as e:
            self._status(f"Refused to write outside project root: {edit.path}")
            return ApplyResult(path=edit.path, ok=False, error_kind=ErrorKind.PATH_ESCAPE, message=str(e))

        created: List[str] = []
        try:
            if target.parent != self.workspace.root:
                self.ensure_directory(target.parent, created)
            self.workspace.write(self.workspace.relative(target), edit.content.encode("utf-8"))
        except Exception as e:
            # 单个文件的任何失败都不能中断整批修改
            message = str(e) or type(e).__name__
            self._status(f"Error writing file {edit.path}: {message}")
            return ApplyResult(
                path=edit.path,
                ok=False,
                error_kind=ErrorKind.WRITE_FAILURE,
                message=message,
                created_dirs=created,
            )

        self._status(f"Applied change: {edit.path}")
        return ApplyResult(path=edit.path, ok=True, created_dirs=created)

    def ensure_directory(self, directory: Path, created: Optional[List[str]] = None) -> List[str]:
        """
        从根目录向下逐级检查 directory 的每一层，缺失的目录按顺序单层创建。
        重复调用是幂等的。新创建的目录（相对路径）追加到 created 并返回，
        中途失败时 created 中仍保留已经创建的部分。

        Raises:
            NotADirectoryError: 某一层已存在但不是目录。
            OSError: 创建目录失败。
        """
        parts = Path(self.workspace.relative(directory)).parts
        if created is None:
            created = []
        for depth in range(1, len(parts) + 1):
            segment = "/".join(parts[:depth])
            if self.workspace.is_dir(segment):
                continue
            if self.workspace.exists(segment):
                raise NotADirectoryError(f"Not a directory: {segment}")
            try:
                self.workspace.create_directory(segment)
            except FileExistsError:
                # 其他进程刚创建了它
                if not self.workspace.is_dir(segment):
                    raise
                continue
            created.append(segment)
            self._status(f"Created directory: {segment}")
        return created


def apply_edits(root: Union[str, Path], edits: Iterable[FileEdit],
                on_status: Optional[StatusCallback] = None) -> List[ApplyResult]:
    """便捷函数：对本地目录 root 应用一批修改"""
    return ChangeApplicator(LocalWorkspace(root), on_status=on_status).apply(edits)
