import base64
import binascii
import json
import logging
import numbers

import pyarrow as pa
import pyarrow.compute as pc

from connection_bloom.constants import MAX_HASH_FUNCS, MIN_HASH_FUNCS
from connection_bloom.errors import ValidationError
from connection_bloom.hashing import as_bytes, hash32, seed_for
from connection_bloom.sizing import optimal_filter_size, optimal_hash_count

logger = logging.getLogger(__name__)

JSON_FIELDS = ("vData", "level", "elements", "fpRate", "nHashFuncs")


class Filter:
    """Bloom filter for Bitcoin connection bloom filtering (BIP37).

    Items are addressed with `n_hash_funcs` seeds of the 32-bit MurmurHash3
    x86 hash, derived as ``i * 0xFBA4C795 + 1e9 * level`` modulo 2**32, so a
    filter built here sets the same bits as any other implementation of the
    scheme given the same buffer size, hash count and level. The level
    re-randomizes addressing for otherwise identical filters (one level per
    layer of a multi-level filter).

    The filter owns a packed bit buffer: bit ``i`` is
    ``v_data[i >> 3] & (1 << (i & 7))``. Bits only ever go from 0 to 1
    through `insert`; `clear` is the only way back. A zero-length buffer is
    legal and matches nothing.

    Instances are not safe for concurrent mutation. Concurrent `contains`
    calls on a filter nobody is inserting into are fine.

    Attributes:
        v_data (bytearray): The packed bit buffer.
        n_hash_funcs (int): Hash functions per item, between 1 and 50.
        level (int): Seed offset for every hash function.
        fp_rate (float): False positive rate the filter was sized for (advisory).
        elements (int): Element count the filter was sized for (advisory).

    Example:
        >>> bf = Filter.create(elements=100, false_positive_rate=0.01)
        >>> bf.insert(b"hello").contains(b"hello")
        True
        >>> Filter.from_json(bf.to_json()) == bf
        True

    """
    def __init__(self, v_data, n_hash_funcs: int, level: int = 0,
                 fp_rate: float = None, elements=None):
        if v_data is None:
            raise ValidationError('Filter requires filter data "vData"')
        if isinstance(v_data, str):
            raise ValidationError('"vData" must be bytes, not str')
        try:
            # always copy: the caller's buffer must not alias ours
            self.v_data = bytearray(v_data)
        except (TypeError, ValueError) as e:
            raise ValidationError(f'"vData" is not a byte sequence: {e}') from e

        if not n_hash_funcs:
            raise ValidationError('Filter requires number of hash functions "nHashFuncs"')
        if isinstance(n_hash_funcs, bool) or not isinstance(n_hash_funcs, numbers.Integral):
            raise ValidationError(f'"nHashFuncs" must be an integer, got {n_hash_funcs!r}')
        if n_hash_funcs > MAX_HASH_FUNCS:
            raise ValidationError(f'"nHashFuncs" exceeded max size "{MAX_HASH_FUNCS}"')
        if n_hash_funcs < MIN_HASH_FUNCS:
            raise ValidationError(f'"nHashFuncs" below min size "{MIN_HASH_FUNCS}"')

        if level is None:
            level = 0
        if isinstance(level, bool) or not isinstance(level, numbers.Integral):
            raise ValidationError(f'"level" must be an integer, got {level!r}')

        self.n_hash_funcs = int(n_hash_funcs)
        self.level = int(level)
        self.fp_rate = fp_rate
        self.elements = elements

    @classmethod
    def from_object(cls, data: dict) -> "Filter":
        """Build a filter from a wire-keyed mapping whose vData is raw bytes"""
        if data.get("vData") is None:
            raise ValidationError('Data object should include filter data "vData"')
        if not data.get("nHashFuncs"):
            raise ValidationError('Data object should include number of hash functions "nHashFuncs"')
        return cls(
            data["vData"],
            data["nHashFuncs"],
            level=data.get("level", 0),
            fp_rate=data.get("fpRate"),
            elements=data.get("elements"),
        )

    @classmethod
    def create(cls, elements, false_positive_rate: float, level: int = 0) -> "Filter":
        """Size a filter for `elements` items at `false_positive_rate`.

        Raises SizingError for degenerate inputs (zero, negative or
        non-numeric elements, a rate outside (0, 1)) and ValidationError when
        the rate is so small the optimal hash count exceeds MAX_HASH_FUNCS.
        """
        filter_size = optimal_filter_size(elements, false_positive_rate)
        n_hash_funcs = optimal_hash_count(filter_size, elements)
        logger.debug("Sized filter: elements=%s fp_rate=%s -> %d bytes, %d hash funcs",
                     elements, false_positive_rate, filter_size, n_hash_funcs)
        if filter_size == 0:
            logger.warning("Filter for elements=%s fp_rate=%s has no capacity; "
                           "it will match nothing", elements, false_positive_rate)
        return cls(
            bytearray(filter_size),
            n_hash_funcs,
            level=level,
            fp_rate=false_positive_rate,
            elements=elements,
        )

    def hash(self, hash_func_index: int, data) -> int:
        """Bit index addressed by hash function `hash_func_index`.

        Raises ZeroDivisionError on a zero-length buffer; `contains` never
        gets here in that case and callers must not `insert` into one.
        """
        return self._index(hash_func_index, as_bytes(data))

    def _index(self, hash_func_index: int, data: bytes) -> int:
        h = hash32(seed_for(hash_func_index, self.level), data)
        return h % (len(self.v_data) * 8)

    def insert(self, data) -> "Filter":
        """Set every bit addressed by data"""
        data = as_bytes(data)
        for i in range(self.n_hash_funcs):
            index = self._index(i, data)
            self.v_data[index >> 3] |= 1 << (7 & index)
        return self

    def contains(self, data) -> bool:
        """True if data was probably inserted, False if it certainly was not"""
        if not self.v_data:
            return False
        data = as_bytes(data)
        for i in range(self.n_hash_funcs):
            index = self._index(i, data)
            if not self.v_data[index >> 3] & (1 << (7 & index)):
                return False
        return True

    def __contains__(self, data) -> bool:
        return self.contains(data)

    def clear(self) -> None:
        """Reset every bit, keeping size, hash count, level and metadata"""
        self.v_data = bytearray(len(self.v_data))

    def insert_many(self, items) -> "Filter":
        """Insert every item of an iterable or Arrow binary/string array, skipping nulls"""
        for item in _iter_items(items):
            if item is not None:
                self.insert(item)
        return self

    def contains_many(self, items) -> pa.BooleanArray:
        """Vectorized `contains`; null items give null results"""
        return pa.array(
            [None if item is None else self.contains(item) for item in _iter_items(items)],
            type=pa.bool_(),
        )

    def bit_array(self) -> pa.BooleanArray:
        """Snapshot of the bit buffer as an Arrow boolean array.

        Arrow bitmaps are LSB-first like the filter buffer, so element i of
        the array is bit i of the filter.
        """
        return pa.Array.from_buffers(
            pa.bool_(), len(self.v_data) * 8, [None, pa.py_buffer(bytes(self.v_data))]
        )

    def bits_set(self) -> int:
        return pc.sum(self.bit_array()).as_py() or 0

    def fill_ratio(self) -> float:
        """Fraction of bits set"""
        if not self.v_data:
            return 0.0
        return self.bits_set() / (len(self.v_data) * 8)

    def estimated_false_positive_rate(self) -> float:
        """False positive rate implied by the bits actually set so far"""
        return self.fill_ratio() ** self.n_hash_funcs

    def to_object(self) -> dict:
        return {
            "vData": base64.b64encode(bytes(self.v_data)).decode("ascii"),
            "level": self.level,
            "elements": self.elements,
            "fpRate": self.fp_rate,
            "nHashFuncs": self.n_hash_funcs,
        }

    def to_json(self) -> str:
        """JSON text of `to_object`; NaN or infinite metadata is rejected"""
        try:
            return json.dumps(self.to_object(), allow_nan=False)
        except ValueError as e:
            raise ValidationError(f"Filter metadata is not JSON-safe: {e}") from e

    @classmethod
    def from_json(cls, text) -> "Filter":
        """Decode the JSON produced by `to_json`; every field is required"""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Filter JSON is malformed: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError("Filter JSON must be an object")
        for field in JSON_FIELDS:
            if field not in data:
                raise ValidationError(f"Filter JSON needs property: {field}")
        try:
            data["vData"] = base64.b64decode(data["vData"], validate=True)
        except (binascii.Error, TypeError, ValueError) as e:
            raise ValidationError(f'"vData" is not valid base64: {e}') from e
        logger.debug("Decoded filter JSON: %d bytes, %s hash funcs, level %s",
                     len(data["vData"]), data["nHashFuncs"], data["level"])
        return cls.from_object(data)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Filter):
            return NotImplemented
        return (self.v_data == other.v_data
                and self.n_hash_funcs == other.n_hash_funcs
                and self.level == other.level
                and self.fp_rate == other.fp_rate
                and self.elements == other.elements)

    __hash__ = None

    def __repr__(self) -> str:
        return (f"<BloomFilter:{','.join(str(b) for b in self.v_data)}"
                f" nHashFuncs:{self.n_hash_funcs} level:{self.level}>")


def _iter_items(items):
    if isinstance(items, (pa.Array, pa.ChunkedArray)):
        return iter(items.to_pylist())
    return iter(items)
