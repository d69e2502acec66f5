# tests/test_registry.py
import numpy as np
import pytest
from medcut.errors import AllocationError, InvalidArgumentError
from medcut.registry import ColorRegistry
from medcut import registry as registry_module


def test_offsets_follow_registration_order():
    reg = ColorRegistry()
    palette = np.zeros((256, 3), dtype=np.uint8)

    bases = [reg.add(palette), reg.add(palette), reg.add(palette)]

    assert bases == [0, 256, 512]
    assert reg.offsets == [0, 256, 512]
    assert reg.map_sizes == [256, 256, 256]
    assert len(reg) == 768


def test_stride_four_ignores_fourth_byte():
    reg = ColorRegistry()
    reg.add(bytes([1, 2, 3, 99, 4, 5, 6, 77]), stride=4)
    assert reg.flatten().tolist() == [[1, 2, 3], [4, 5, 6]]


def test_count_limits_colors_read():
    reg = ColorRegistry()
    base = reg.add(bytes(range(12)), stride=3, count=2)
    assert base == 0
    assert reg.flatten().tolist() == [[0, 1, 2], [3, 4, 5]]


def test_accepts_tuples_flat_ints_and_arrays():
    reg = ColorRegistry()
    reg.add([(1, 2, 3), (4, 5, 6)])
    reg.add([7, 8, 9, 0, 10, 11, 12, 0], stride=4)
    reg.add(np.array([[13, 14, 15, 255]], dtype=np.uint8), stride=4)

    assert reg.flatten().tolist() == [[1, 2, 3], [4, 5, 6], [7, 8, 9], [10, 11, 12], [13, 14, 15]]


def test_registered_colors_are_copied():
    reg = ColorRegistry()
    source = np.array([[1, 1, 1]], dtype=np.uint8)
    reg.add(source)
    source[0] = 9
    assert reg.flatten().tolist() == [[1, 1, 1]]


@pytest.mark.parametrize("colors, kwargs", [
    (b"\x00\x00\x00", {"stride": 2}),
    (b"\x00\x00\x00", {"stride": 5}),
    (b"", {}),
    (b"\x00\x00\x00", {"count": 2}),
    (b"\x00\x00\x00", {"count": 0}),
    ([(1, 2)], {}),
    ([(1, 2, 300)], {}),
    ([(1, 2, 3, 4)], {"stride": 3}),
    (np.zeros((2, 3), dtype=np.uint8), {"stride": 4}),
    (np.array([[-1, 0, 0]]), {}),
    (bytes([1, 2, 3, 4]), {}),
    (bytes([1, 2, 3, 4, 5, 6, 7]), {"stride": 4}),
    ([1, 2, 3, 4, 5], {}),
    (np.arange(5, dtype=np.uint8), {}),
])
def test_rejects_malformed_input(colors, kwargs):
    reg = ColorRegistry()
    with pytest.raises(InvalidArgumentError):
        reg.add(colors, **kwargs)
    assert len(reg) == 0


def test_explicit_count_may_leave_trailing_bytes():
    reg = ColorRegistry()
    reg.add(bytes([1, 2, 3, 4]), stride=3, count=1)
    reg.add([5, 6, 7, 8, 9], stride=3, count=1)
    assert reg.flatten().tolist() == [[1, 2, 3], [5, 6, 7]]


def test_flatten_without_colors_is_invalid():
    with pytest.raises(InvalidArgumentError):
        ColorRegistry().flatten()


def test_allocation_failure_leaves_registry_unchanged(monkeypatch):
    reg = ColorRegistry()
    reg.add([(1, 2, 3)])

    def out_of_memory(*args, **kwargs):
        raise MemoryError("simulated")

    monkeypatch.setattr(registry_module, "_as_rgb_rows", out_of_memory)
    with pytest.raises(AllocationError):
        reg.add([(4, 5, 6)])

    assert len(reg) == 1
    assert reg.offsets == [0]


def test_release_drops_everything():
    reg = ColorRegistry()
    reg.add([(1, 2, 3)])
    reg.release()
    assert len(reg) == 0
    assert reg.offsets == []
