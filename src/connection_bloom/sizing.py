import logging
import math
import numbers

from connection_bloom.constants import LN2, LN2SQUARED, MIN_HASH_FUNCS
from connection_bloom.errors import SizingError

logger = logging.getLogger(__name__)


def _check_elements(elements) -> None:
    if isinstance(elements, bool) or not isinstance(elements, numbers.Real):
        logger.error("Cannot size filter for elements=%r", elements)
        raise SizingError(f"elements must be a number, got {elements!r}")
    if math.isnan(elements) or elements <= 0:
        logger.error("Cannot size filter for elements=%r", elements)
        raise SizingError(f"elements must be positive, got {elements!r}")


def _check_rate(fp_rate) -> None:
    if isinstance(fp_rate, bool) or not isinstance(fp_rate, numbers.Real):
        raise SizingError(f"false positive rate must be a number, got {fp_rate!r}")
    if not 0 < fp_rate < 1:
        logger.error("Cannot size filter for fp_rate=%r", fp_rate)
        raise SizingError(f"false positive rate must be in (0, 1), got {fp_rate!r}")


def optimal_filter_size(elements, fp_rate) -> int:
    """Bytes needed for `elements` items at `fp_rate`.

    -1 / ln(2)^2 * n * ln(p) bits, floored to whole bytes. Evaluated in the
    same order as the Bitcoin reference so the doubles agree.
    """
    _check_elements(elements)
    _check_rate(fp_rate)
    size = -1.0 / LN2SQUARED * elements * math.log(fp_rate)
    if not math.isfinite(size):
        logger.error("Filter size is not finite for elements=%r fp_rate=%r",
                     elements, fp_rate)
        raise SizingError(f"filter size is not finite: {size!r}")
    return math.floor(size / 8)


def optimal_hash_count(filter_size: int, elements) -> int:
    """Hash functions for a `filter_size` byte buffer: ceil(m / n * ln(2)), at least 1"""
    _check_elements(elements)
    n_hash_funcs = filter_size * 8 / elements * LN2
    if not math.isfinite(n_hash_funcs):
        logger.error("nHashFuncs is not finite for elements=%r", elements)
        raise SizingError(f"hash function count is not finite: {n_hash_funcs!r}")
    return max(math.ceil(n_hash_funcs), MIN_HASH_FUNCS)
