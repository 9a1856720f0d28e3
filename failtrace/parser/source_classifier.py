"""
Source Classifier
=================
Maps stack frames to an origin and selects the single anchor frame that
represents where a failure "really happened".

Origins (evaluated top to bottom, first match wins):
    SupportFile   — under the configured support directory
    ProjectFile   — under the project root, unless it is vendor code (a
                    virtualenv inside the project)
    ExternalFile  — anything else (flagged ``vendor`` for installed
                    packages, the stdlib and pseudo files)

Anchor Strategy (ordered selector table over NON-internal frames):
    1. THROW SITE OUTSIDE PROJECT — innermost candidate is external user
       source (not vendor): point at the throw site itself
    2. FIRST PROJECT FRAME
    3. FIRST SUPPORT FRAME
    4. INNERMOST CANDIDATE
    None when every frame is internal.

Internal frames are excluded by the ``internal`` tag set when the stack was
generated, never by path. Deterministic: same frames + same roots → same
anchor, always.
"""
import logging
from typing import Callable, Optional, Sequence

from failtrace.core.config import PROJECT_ROOT, SUPPORT_DIR
from failtrace.core.constants import Origin
from failtrace.models.stack_frame import ClassifiedFrame, StackFrame
from failtrace.utils.path_utils import is_under, is_vendor_path

logger = logging.getLogger(__name__)

OriginRule = Callable[["SourceClassifier", StackFrame], bool]
AnchorSelector = Callable[[Sequence[ClassifiedFrame]], Optional[ClassifiedFrame]]

_FRAME_FIELDS = set(StackFrame.model_fields)


# ---------------------------------------------------------------------------
# 1. Origin Table
# ---------------------------------------------------------------------------
# Each entry: (predicate, origin). Support is checked before project because
# the support directory normally lives inside the project root. Vendor code
# is checked before project because a virtualenv often lives there too.
_ORIGIN_RULES: list[tuple[OriginRule, str]] = [
    (lambda c, f: is_under(f.source_file, c.support_dir), Origin.SUPPORT),
    (lambda c, f: is_vendor_path(f.source_file), Origin.EXTERNAL),
    (lambda c, f: is_under(f.source_file, c.project_root), Origin.PROJECT),
]


# ---------------------------------------------------------------------------
# 2. Anchor Selector Table
# ---------------------------------------------------------------------------
def _external_throw_site(candidates: Sequence[ClassifiedFrame]) -> Optional[ClassifiedFrame]:
    innermost = candidates[0]
    if innermost.origin == Origin.EXTERNAL and not innermost.vendor:
        return innermost
    return None


def _first_of(origin: str) -> AnchorSelector:
    def select(candidates: Sequence[ClassifiedFrame]) -> Optional[ClassifiedFrame]:
        return next((f for f in candidates if f.origin == origin), None)
    select.__name__ = f"first_{origin}"
    return select


def _innermost(candidates: Sequence[ClassifiedFrame]) -> Optional[ClassifiedFrame]:
    return candidates[0]


ANCHOR_SELECTORS: list[AnchorSelector] = [
    _external_throw_site,
    _first_of(Origin.PROJECT),
    _first_of(Origin.SUPPORT),
    _innermost,
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
class SourceClassifier:
    """
    Classifies frames against a project root and a support directory.

    Parameters
    ----------
    project_root : str
        Root of the project under test.
    support_dir : str
        Helper/support directory; usually inside ``project_root``.
    """

    def __init__(self, project_root: str = PROJECT_ROOT, support_dir: str = SUPPORT_DIR) -> None:
        self.project_root = project_root
        self.support_dir = support_dir

    def origin_of(self, frame: StackFrame) -> str:
        for predicate, origin in _ORIGIN_RULES:
            if predicate(self, frame):
                return origin
        return Origin.EXTERNAL

    def classify_frame(self, frame: StackFrame) -> ClassifiedFrame:
        origin = self.origin_of(frame)
        return ClassifiedFrame(
            **frame.model_dump(include=_FRAME_FIELDS),
            origin=origin,
            vendor=origin == Origin.EXTERNAL and is_vendor_path(frame.source_file),
        )

    def classify(self, frames: Sequence[StackFrame]) -> list[ClassifiedFrame]:
        """Annotate every frame with its origin; order is preserved."""
        return [self.classify_frame(f) for f in frames]

    def select_anchor(self, classified: Sequence[ClassifiedFrame]) -> Optional[ClassifiedFrame]:
        """
        Pick the anchor frame from classified frames (innermost first).

        Returns
        -------
        ClassifiedFrame | None
            None only when there are no non-internal frames.
        """
        candidates = [f for f in classified if not f.internal]
        if not candidates:
            logger.warning("No candidate frames (%d internal) — anchor left empty", len(classified))
            return None

        for selector in ANCHOR_SELECTORS:
            anchor = selector(candidates)
            if anchor is not None:
                logger.debug("Anchor chosen by %s: %s:%d:%d",
                             getattr(selector, "__name__", "selector"),
                             anchor.source_file, anchor.line, anchor.column)
                return anchor
        return None
