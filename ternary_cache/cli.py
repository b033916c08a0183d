# ternary_cache/cli.py
from pathlib import Path
from typing import Optional
import click
from ternary_cache.cache.adapter import get_cache
from ternary_cache.config import CONFIG
from ternary_cache.logging import get_logger, set_level
from ternary_cache.tree.errors import KeyNotFoundError, TreeCorruptError
from ternary_cache.tree.tree import TernaryTree, TraversalOrder
from ternary_cache.utils.files import FileOperationError, read_lines

logger = get_logger("cli")

class AliasedGroup(click.Group):
    COMMAND_ALIASES = {
        "b": "build", "s": "search", "g": "get", "st": "stats", "d": "delete",
    }

    def get_command(self, ctx, cmd_name):
        return super().get_command(ctx, self.COMMAND_ALIASES.get(cmd_name, cmd_name))

def load_cached_tree() -> Optional[TernaryTree]:
    tree = TernaryTree.get_cached_tree(get_cache())
    if tree is None:
        click.echo("No cached tree found. Run 'build' first.")
    return tree

@click.group(cls=AliasedGroup, context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--verbose", is_flag=True, help="Enable verbose logging")
def cli(verbose):
    if verbose:
        set_level("DEBUG")

@cli.command("build")
@click.argument("words_file", required=False, type=click.Path(path_type=Path))
@click.option("--limit", type=int, default=None, help="Only load the first N words")
def build(words_file: Optional[Path] = None, limit: Optional[int] = None):
    """Build a tree from a word list (one word per line) and publish it to the cache."""
    words_file = words_file or CONFIG.words_file
    try:
        words = list(read_lines(words_file))
    except FileOperationError as e:
        raise click.ClickException(str(e))
    if limit is not None:
        words = words[:limit]

    key_values = {word: number for number, word in enumerate(words, start=1)}
    tree = TernaryTree(caching=True, cache=get_cache())
    tree.build(key_values)
    logger.info(f"Published tree built from {words_file}")
    click.echo(f"Built tree: {tree.key_count} keys, {tree.node_count} nodes, height {tree.height()}")

@cli.command("search")
@click.argument("prefix")
@click.option("--limit", type=int, default=25, help="Maximum number of matches to print")
def search(prefix: str, limit: int = 25):
    """List cached keys starting with PREFIX."""
    tree = load_cached_tree()
    if tree is None:
        return
    try:
        matches = tree.prefix_search(prefix)
    except TreeCorruptError as e:
        raise click.ClickException(f"{e} Rebuild the tree.")
    if not matches:
        click.echo(f"No keys start with {prefix!r}")
        return
    for key, value in list(matches.items())[:limit]:
        click.echo(f"{key}\t{value}")
    if len(matches) > limit:
        click.echo(f"... {len(matches) - limit} more")

@cli.command("get")
@click.argument("key")
def get(key: str):
    """Print the value stored for KEY."""
    tree = load_cached_tree()
    if tree is None:
        return
    try:
        value = tree.get(key)
    except TreeCorruptError as e:
        raise click.ClickException(f"{e} Rebuild the tree.")
    click.echo(f"{key}\t{value}" if value is not None else f"{key!r} not found")

@cli.command("stats")
def stats():
    """Show node count and height of the cached tree."""
    tree = load_cached_tree()
    if tree is None:
        return
    nodes = []
    try:
        tree.traverse_tree(TraversalOrder.POST_ORDER, nodes.append)
        height = tree.height()
    except (KeyNotFoundError, TreeCorruptError) as e:
        raise click.ClickException(str(e))
    click.echo(f"Cached nodes: {len(nodes)}")
    click.echo(f"Height: {height}")

@cli.command("delete")
@click.option("--force", is_flag=True, help="Delete without confirmation")
def delete(force: bool = False):
    """Evict the cached tree."""
    if not force and not click.confirm("Delete the cached tree?"):
        return
    deleted = TernaryTree.delete_cached_tree(get_cache())
    click.echo(f"Deleted {deleted} cached nodes")

if __name__ == "__main__":
    cli()
