"""
统一的控制台输出工具，基于 rich 实现 CLI 交互。
核心模块不直接输出，通过 on_status 回调交给这里。
"""
from rich.console import Console as RichConsole
from rich.theme import Theme
from rich.table import Table
from rich.panel import Panel
from rich.text import Text
from typing import Iterable, List

# 自定义主题
CUSTOM_THEME = Theme({
    "info": "cyan bold",
    "success": "green bold",
    "warning": "yellow bold",
    "error": "red bold",
    "heading": "bold underline",
    "path": "magenta",
    "prompt": "green",
    "user": "blue bold",
    "model": "green bold",
})

# 全局控制台实例（单例）
console = RichConsole(theme=CUSTOM_THEME, soft_wrap=True)


# --- 便捷输出函数 ---

def info(message: str):
    """蓝色信息提示"""
    console.print(f"💡 [info]INFO[/info]: {message}")


def success(message: str):
    """绿色成功提示"""
    console.print(f"✅ [success]SUCCESS[/success]: {message}")


def warning(message: str):
    """黄色警告提示"""
    console.print(f"⚠️  [warning]WARNING[/warning]: {message}")


def error(message: str):
    """红色错误提示"""
    console.print(f"❌ [error]ERROR[/error]: {message}")


def heading(title: str):
    """标题输出"""
    console.print(f"\n🎯 [heading]{title}[/heading]\n")


# --- 交互式输入 ---

def confirm(prompt: str, default: bool = True) -> bool:
    """确认对话（Y/N）"""
    yes_no = "[Y/n]" if default else "[y/N]"
    full_prompt = f"❓ {prompt} {yes_no}: "
    response = console.input(full_prompt).strip().lower()

    if not response:
        return default
    return response in ("y", "yes")


# --- 结构化输出 ---

def show_response(text: str, title: str = "🤖 Model"):
    """原样显示模型回复（不做 markup 解析）"""
    console.print(Panel(Text(text), title=title, border_style="green"))


def print_apply_results(results: Iterable) -> None:
    """以表格输出每个文件的应用结果"""
    rows: List = list(results)
    if not rows:
        return
    table = Table(title="📋 Applied changes", show_header=True, header_style="bold magenta")
    table.add_column("File", style="path")
    table.add_column("Result")
    table.add_column("Detail", style="white")
    for result in rows:
        if result.ok:
            table.add_row(Text(result.path), "[success]ok[/success]", Text(", ".join(result.created_dirs)))
        else:
            kind = result.error_kind.value if result.error_kind else "error"
            table.add_row(Text(result.path), f"[error]{kind}[/error]", Text(result.message or ""))
    console.print(table)


def print_file_list(files: List[str], title: str = "📁 Workspace files"):
    """打印工作区文件列表"""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Path", style="path")
    for index, path in enumerate(files, start=1):
        table.add_row(str(index), Text(path))
    console.print(table)


# --- 初始化欢迎信息 ---

def show_welcome():
    """显示欢迎横幅"""
    console.print("\n" + "═" * 50, style="bold blue")
    console.print("🚀 [bold green]ChatEdit CLI[/bold green] - 用对话修改代码库", end="")
    console.print(" 🤖", emoji=True)
    console.print("═" * 50 + "\n", style="bold blue")
