# chatedit/cli
"""
ChatEdit CLI 主入口（通过 EditSession 服务层调用）
"""
import click
from pathlib import Path

from rich.table import Table
from rich.text import Text

from chatedit.core.applier import ChangeApplicator
from chatedit.core.config import (
    ConfigError, config_path, render_default_config, validate_config_content,
)
from chatedit.core.extractor import RegexBlockExtractor
from chatedit.core.models import ChatResult
from chatedit.core.session import EditSession, TurnInProgressError
from chatedit.core.workspace import LocalWorkspace

from chatedit.utils.console import (
    console, info, success, warning, error,
    heading, show_welcome, confirm,
    show_response, print_apply_results, print_file_list,
)

# ------------------------------
# CLI 主入口
# ------------------------------

@click.group(invoke_without_command=True)
@click.version_option("0.1.0", message="ChatEdit CLI v%(version)s")
@click.option("--root", "-C", "root", type=click.Path(file_okay=False), default=".",
              help="Project root directory (default: current directory)")
@click.option("--verbose", "-v", is_flag=True, help="Show the history sent with each request")
@click.pass_context
def cli(ctx, root: str, verbose: bool):
    """🤖 ChatEdit - edit a codebase by chatting with an LLM"""
    ctx.ensure_object(dict)
    ctx.obj['ROOT'] = Path(root)
    ctx.obj['VERBOSE'] = verbose
    show_welcome()
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())

# ------------------------------
# 辅助函数
# ------------------------------

def _load_session(ctx) -> EditSession:
    """
    Helper function: load config and open an EditSession on the project root.
    """
    root = ctx.obj['ROOT']
    if not root.is_dir():
        error(f"Project root not found: {root}")
        raise click.Abort()
    try:
        return EditSession(root=root, on_status=info, verbose=ctx.obj['VERBOSE'])
    except ConfigError as e:
        error(f"Invalid configuration: {e}")
        raise click.Abort()


def _render_result(result: ChatResult) -> None:
    if not result.success:
        error(result.text)
        return
    show_response(result.text)
    if result.apply_results:
        print_apply_results(result.apply_results)
        failed = result.failed_results
        if failed:
            warning(f"Partially applied: {len(result.apply_results) - len(failed)}/{len(result.apply_results)} changes were written.")
        else:
            success(f"All {len(result.apply_results)} changes applied.")
    else:
        info("No file changes in response.")

# ------------------------------
# 命令: init
# ------------------------------

@cli.command()
@click.option("--model", default=None, help="Model name to store in config.yaml")
@click.option("--api-key", default=None, help="API key to store in config.yaml")
@click.option("--base-url", default=None, help="Custom API base URL")
@click.pass_context
def init(ctx, model: str, api_key: str, base_url: str):
    """🔧 Initialize project configuration"""
    heading("Project Initialization")
    root = ctx.obj['ROOT']
    config_file = config_path(root)

    if config_file.exists():
        if not confirm(f"{config_file} already exists. Overwrite?", default=False):
            info("Cancelled.")
            return
    try:
        content = render_default_config(
            Path(root).resolve().name,
            model_name=model,
            api_key=api_key,
            base_url=base_url,
        )
        config_file.parent.mkdir(parents=True, exist_ok=True)
        config_file.write_text(content, encoding="utf-8")
        success(f"Generated: {config_file}")
        console.print("\n💡 Suggested next command:")
        console.print("[dim]$[/dim] [cyan]chatedit chat --files <comma-separated paths>[/cyan]")
    except OSError as e:
        error(f"Initialization failed: {e}")
        raise click.Abort()

# ------------------------------
# 命令: validate
# ------------------------------

@cli.command(name="validate")
@click.pass_context
def config_validate(ctx):
    """✅ Validate .chatedit/config.yaml"""
    heading("Validating Configuration")
    config_file = config_path(ctx.obj['ROOT'])
    if not config_file.exists():
        error(f"{config_file} not found. Please run `chatedit init` first.")
        raise click.Abort()
    try:
        validate_config_content(config_file.read_text(encoding="utf-8"))
        success("Configuration file validated successfully!")
    except ConfigError as e:
        error(f"Validation failed: {e}")
        raise click.Abort()

# ------------------------------
# 命令: files
# ------------------------------

@cli.command(name="files")
@click.pass_context
def list_files(ctx):
    """📁 List the files of the project workspace"""
    session = _load_session(ctx)
    heading(f"Workspace: {session.root}")
    listing = session.refresh_files()
    if listing.error:
        error(listing.error)
        raise click.Abort()
    if not listing.files:
        console.print("No files found.", style="yellow")
        return
    print_file_list(listing.files)

# ------------------------------
# 命令: ask（单轮）
# ------------------------------

@cli.command(name="ask")
@click.argument("instruction")
@click.option("--files", "-f", "target_files", default="", help="Comma-separated relative paths to include as context")
@click.pass_context
def ask(ctx, instruction: str, target_files: str):
    """💬 Send one instruction and apply the file changes in the reply"""
    if not instruction.strip():
        error("Please provide instructions.")
        raise click.Abort()
    session = _load_session(ctx)
    result = session.ask(instruction, target_files)
    _render_result(result)
    if not result.success or result.failed_results:
        ctx.exit(1)

# ------------------------------
# 命令: chat（交互式）
# ------------------------------

@cli.command(name="chat")
@click.option("--files", "-f", "target_files", default="", help="Comma-separated relative paths to include as context")
@click.pass_context
def chat(ctx, target_files: str):
    """🗨️ Interactive chat session (/files a,b  /list  /exit)"""
    session = _load_session(ctx)
    heading(f"Chat session on {session.root}")
    info("Type /files a,b to change target files, /list to list files, /exit to quit.")
    with session:
        while True:
            try:
                line = console.input("[user]you[/user]> ")
            except (EOFError, KeyboardInterrupt):
                console.print()
                break
            text = line.strip()
            if not text:
                continue
            if text in ("/exit", "/quit"):
                break
            if text.startswith("/files"):
                target_files = text[len("/files"):].strip()
                info(f"Target files: {target_files or '(none)'}")
                continue
            if text == "/list":
                listing = session.refresh_files()
                if listing.error:
                    error(listing.error)
                else:
                    print_file_list(listing.files)
                continue
            try:
                result = session.ask(text, target_files)
            except TurnInProgressError as e:
                warning(str(e))
                continue
            _render_result(result)

# ------------------------------
# 命令: apply（应用已保存的响应）
# ------------------------------

@cli.command(name="apply")
@click.argument("response_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--dry-run", is_flag=True, help="Only list the file blocks found in the response")
@click.pass_context
def apply_response(ctx, response_file: str, dry_run: bool):
    """💾 Apply the file blocks of a saved LLM response"""
    heading(f"Applying LLM response: {response_file}")
    try:
        response_content = Path(response_file).read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        error(f"Failed to read response file '{response_file}': {e}")
        raise click.Abort()

    extraction = RegexBlockExtractor().extract(response_content)
    if extraction.is_empty:
        if extraction.is_malformed:
            warning(f"Found {extraction.unmatched_fences} incomplete file block(s); nothing to apply.")
        else:
            info("No file blocks found in response.")
        return

    if dry_run:
        table = Table(title="📋 File blocks", show_header=True, header_style="bold magenta")
        table.add_column("#", style="dim", justify="right")
        table.add_column("Path", style="path")
        table.add_column("Lines", justify="right")
        for index, edit in enumerate(extraction.edits, start=1):
            table.add_row(str(index), Text(edit.path), str(len(edit.content.splitlines())))
        console.print(table)
        return

    root = ctx.obj['ROOT']
    if not root.is_dir():
        error(f"Project root not found: {root}")
        raise click.Abort()
    results = ChangeApplicator(LocalWorkspace(root), on_status=info).apply(extraction.edits)
    print_apply_results(results)
    failed = [r for r in results if not r.ok]
    if failed:
        warning(f"Partially applied: {len(results) - len(failed)}/{len(results)} changes were written.")
        ctx.exit(1)
    success(f"All {len(results)} changes applied.")

# ------------------------------
# 主入口
# ------------------------------
if __name__ == '__main__':
    cli(obj={})
