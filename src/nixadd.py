"""nixadd - declarative package list management for home-manager

    Adds, removes and searches packages in the ``home.packages`` list of a
    home-manager configuration while preserving the file's formatting.

    Returns:
        int: Exit code
"""
import difflib
import logging
import os
import sys

from args import parse_args
from cli_apply import apply_changes
from cli_config import AppConfig, load_config
from common.errors import (
    ApplyError,
    CacheFetchError,
    CacheIOError,
    ConfigError,
    DocumentParseError,
    DocumentWriteError,
    EditError,
    NixAddError,
)
from common.logging_utils import add_file_handler, configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes, Mode
from pkgindex.cache import PackageIndexCache
from pkgindex.search import search
from reconcile import ReconciliationOutcome, ReconciliationRequest, Reconciler

logger = logging.getLogger(__name__)

_EXIT_CODES = (
    (ConfigError, ExitCodes.CONFIG_ERROR),
    (CacheFetchError, ExitCodes.FETCH_ERROR),
    (CacheIOError, ExitCodes.FILE_ERROR),
    (DocumentParseError, ExitCodes.FILE_ERROR),
    (DocumentWriteError, ExitCodes.FILE_ERROR),
    (EditError, ExitCodes.EDIT_ERROR),
    (ApplyError, ExitCodes.APPLY_ERROR),
)


def exit_code_for(error: NixAddError) -> ExitCodes:
    """Map an error to the process exit code reported for it."""
    for error_type, code in _EXIT_CODES:
        if isinstance(error, error_type):
            return code
    return ExitCodes.FILE_ERROR


def _setup_logging(args):
    """Configure logging based on CLI arguments."""
    level = getattr(args, "LOG_LEVEL", None)
    if level:
        os.environ[Constants.ENV_LOG_LEVEL] = str(level).upper()
    configure_logging(level)

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        add_file_handler(log_file)
        logger.info("Logging to file: %s", log_file)


def prompt_confirm(unresolved, stream_in=None, stream_out=None):
    """Ask whether to continue although some packages were not found.

    Only ``y``/``yes`` (any case) continue; end of input counts as no.
    """
    stream_in = stream_in or sys.stdin
    stream_out = stream_out or sys.stdout
    stream_out.write("Some packages were not found: " + ", ".join(unresolved) + "\n")
    stream_out.write("Continue? [y/N] ")
    stream_out.flush()
    answer = stream_in.readline()
    if not answer:
        stream_out.write("\n")
        return False
    return answer.strip().lower() in ("y", "yes")


def _assume_yes(_unresolved):
    return True


def index_loader(config: AppConfig):
    """Return a zero-argument callable loading the cached package index."""
    def load():
        return PackageIndexCache().load(config.cache_path, config.max_cache_duration)
    return load


def render_diff(outcome: ReconciliationOutcome, path: str) -> str:
    """Unified diff between the document before and after the edit."""
    return "".join(
        difflib.unified_diff(
            outcome.before.splitlines(keepends=True),
            outcome.after.splitlines(keepends=True),
            fromfile=path,
            tofile=path,
        )
    )


def format_results(results, limit):
    """Render search results, best first, as ``key (version)`` plus description."""
    lines = []
    for result in results[:max(limit, 0)]:
        lines.append(f"{result.canonical_key} ({result.version})")
        lines.append(f"    {result.description}")
    return "\n".join(lines)


def run_search(config: AppConfig, terms, out=None):
    """Search the index for ``terms`` and print the top results."""
    out = out or sys.stdout
    results = search(terms, index_loader(config)())
    if not results:
        logger.warning("No packages matched: %s", " ".join(terms))
        return
    out.write(format_results(results, config.num_print) + "\n")


def run_reconcile(config: AppConfig, args, mode: Mode, out=None):
    """Add or remove the requested packages, then run the enabled post-edit steps."""
    out = out or sys.stdout
    confirm = _assume_yes if getattr(args, "ASSUME_YES", False) else prompt_confirm
    reconciler = Reconciler(
        config.config_path,
        index_loader(config),
        confirm,
        attr_path=config.packages_attr,
    )
    dry_run = bool(getattr(args, "DRY_RUN", False))
    outcome = reconciler.reconcile(
        ReconciliationRequest(tuple(args.PACKAGES), mode, dry_run=dry_run)
    )
    if not outcome.changed:
        return outcome
    if dry_run:
        out.write(render_diff(outcome, config.config_path))
        return outcome
    logger.info("Updated %s", config.config_path)
    apply_changes(config, outcome.keys, mode)
    return outcome


def run(args) -> ExitCodes:
    """Dispatch the parsed command; errors map to exit codes."""
    try:
        config = load_config(args)
        if args.COMMAND == "search":
            run_search(config, args.PACKAGES)
        else:
            run_reconcile(config, args, Mode(args.COMMAND))
    except NixAddError as exc:
        logging.error("%s", exc)
        return exit_code_for(exc)
    return ExitCodes.SUCCESS


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)
    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND),
        )
    code = run(args)
    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(
                event="function_exit",
                component="cli",
                action=args.COMMAND,
                outcome="success" if code == ExitCodes.SUCCESS else "failure",
            ),
        )
    sys.exit(code.value)


if __name__ == "__main__":
    main()
