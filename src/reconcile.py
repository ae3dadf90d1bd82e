"""Add/remove orchestration for the home-manager package list.

Resolves requested short names, diffs them against the current document and
hands the remainder to the editor. The confirmation callback is the only
interactive seam; the index loader is only invoked when adding.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from common.errors import EditError
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants, Mode
from nixconfig.document import ConfigDocument
from nixconfig.editor import insert_packages, remove_packages
from nixconfig.resolver import DocumentResolver, IndexResolver, resolve_all
from pkgindex.models import PackageIndex

logger = logging.getLogger(__name__)

Confirm = Callable[[List[str]], bool]


@dataclass(frozen=True)
class ReconciliationRequest:
    """Names to add or remove, in request order (duplicates allowed)."""
    requested_names: Tuple[str, ...]
    mode: Mode
    dry_run: bool = False


@dataclass
class ReconciliationOutcome:
    """What a reconciliation did; ``changed`` drives the apply/commit step."""
    changed: bool
    keys: List[str] = field(default_factory=list)
    unresolved: List[str] = field(default_factory=list)
    written: bool = False
    before: str = ""
    after: str = ""


def unique(items: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(items))


def subset_not_present(keys: Sequence[str], document_text: str) -> List[str]:
    """Keys (deduplicated) that do not occur anywhere in the document text."""
    return [key for key in unique(keys) if key not in document_text]


class Reconciler:
    """Apply one reconciliation request to a configuration file.

    Args:
        config_path: home-manager file holding the package list.
        index_loader: Returns the package index (only called in add mode).
        confirm: Asked with the unresolved names; False abandons the request.
        attr_path: Attribute path of the managed list.
    """

    def __init__(
        self,
        config_path: str,
        index_loader: Callable[[], PackageIndex],
        confirm: Confirm,
        attr_path: str = Constants.PACKAGES_ATTR_PATH,
    ):
        self.config_path = config_path
        self._index_loader = index_loader
        self._confirm = confirm
        self._attr_path = attr_path

    def reconcile(self, request: ReconciliationRequest) -> ReconciliationOutcome:
        """Run the add or remove flow and report whether the document changed.

        Raises:
            DocumentParseError: If the file cannot be read or has no package list.
            CacheFetchError, CacheIOError: If the index cannot be obtained (add).
            EditError: If the editor cannot apply a resolved change.
            DocumentWriteError: If the edited file cannot be written.
        """
        document = ConfigDocument.load(self.config_path, self._attr_path)
        logger.info("Trying to %s package(s) %s", request.mode.value, list(request.requested_names))
        logger.info("Current packages: %s", document.entries())

        if request.mode == Mode.ADD:
            resolver = IndexResolver(self._index_loader())
        else:
            resolver = DocumentResolver(document)
        resolved, unresolved = resolve_all(resolver, request.requested_names)

        outcome = ReconciliationOutcome(changed=False, unresolved=unresolved, before=document.text())
        outcome.after = outcome.before
        if unresolved:
            logger.warning("Some packages were not found: %s", ", ".join(unresolved))
            if not self._confirm(unresolved):
                logger.info("Aborted by user; config left untouched")
                return outcome

        if request.mode == Mode.ADD:
            keys = subset_not_present(resolved, document.text())
            edit = insert_packages
        else:
            keys = unique(resolved)
            edit = remove_packages

        if is_debug_enabled(logger):
            logger.debug(
                "Computed package subset",
                extra=extra_context(
                    event="decision",
                    component="reconcile",
                    action=request.mode.value,
                    outcome="empty" if not keys else "non_empty",
                    count=len(keys),
                ),
            )
        if not keys:
            logger.info("Nothing to %s; all requested packages already in the desired state", request.mode.value)
            return outcome

        logger.info("Applying %s for: %s", request.mode.value, keys)
        edited: Optional[ConfigDocument] = edit(document, keys)
        if edited is None:
            raise EditError(
                f"could not locate '{self._attr_path}' list in {self.config_path} while editing"
            )

        outcome.changed = True
        outcome.keys = keys
        outcome.after = edited.text()
        if request.dry_run:
            logger.info("Dry run; not writing %s", self.config_path)
        else:
            edited.write(self.config_path)
            outcome.written = True
        return outcome
