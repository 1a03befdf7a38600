import numpy as np
import pytest

from src.domain.entities.edit_settings import TransformState
from src.domain.errors import InvalidDimension
from src.domain.services.geometry_service import (
    GeometryService as GS,
    ResizeDraft,
    crop_ratio_for,
    find_resize_preset,
    round_half_up,
    validate_dimensions,
)


@pytest.fixture()
def grid():
    # 2 rows x 3 columns
    return np.array([[0.0, 1.0, 2.0], [3.0, 4.0, 5.0]], dtype=np.float32)


def test_rotate_right_is_clockwise(grid):
    out = GS.rotate_flip(grid, 90, False, False)
    assert np.array_equal(out, np.array([[3.0, 0.0], [4.0, 1.0], [5.0, 2.0]]))


def test_rotate_left_is_counter_clockwise(grid):
    out = GS.rotate_flip(grid, -90, False, False)
    assert np.array_equal(out, np.rot90(grid, 1))


def test_flip_is_applied_before_rotation_in_source_axes(grid):
    out = GS.rotate_flip(grid, 90, True, False)
    assert np.array_equal(out, np.rot90(np.fliplr(grid), -1))
    out = GS.rotate_flip(grid, 270, False, True)
    assert np.array_equal(out, np.rot90(np.flipud(grid), -3))


def test_rotation_must_be_quarter_turns(grid):
    with pytest.raises(ValueError):
        GS.rotate_flip(grid, 45, False, False)


def test_rotation_keeps_sign():
    state = GS.rotate_left(TransformState())
    assert state.rotation == -90
    state = GS.rotate_left(GS.rotate_left(GS.rotate_left(state)))
    assert state.rotation == 0
    assert GS.rotate_right(GS.rotate_left(TransformState())).rotation == 0


def test_three_right_turns_swap_dimensions():
    state = TransformState()
    for _ in range(3):
        state = GS.rotate_right(state)
    assert state.rotation == 270
    assert GS.output_size(1920, 1080, state) == (1080, 1920)


@pytest.mark.parametrize("direction", ["left", "right"])
def test_four_turns_restore_dimensions(direction):
    turn = GS.rotate_left if direction == "left" else GS.rotate_right
    state = TransformState()
    for _ in range(4):
        state = turn(state)
    assert state.rotation == 0
    assert GS.output_size(640, 480, state) == (640, 480)


def test_rotation_carries_crop_and_resize_into_new_frame():
    state = TransformState(crop_ratio=16 / 9, resize_width=160, resize_height=90).rotated(90)
    assert state.crop_ratio == pytest.approx(9 / 16)
    assert (state.resize_width, state.resize_height) == (90, 160)


def test_crop_box_is_centred():
    assert GS.crop_box(400, 300, 1.0) == (50, 0, 300, 300)
    assert GS.crop_box(300, 400, 16 / 9) == (0, 115, 300, 169)


def test_output_size_crops_in_rotated_frame():
    state = TransformState(rotation=90, crop_ratio=1.0)
    assert GS.output_size(400, 300, state) == (300, 300)
    state = TransformState(crop_ratio=16 / 9)
    assert GS.output_size(1600, 1600, state) == (1600, 900)


def test_crop_ratio_clears_resize_target():
    state = GS.with_size(TransformState(), 100, 50)
    state = GS.with_crop_ratio(state, crop_ratio_for("1:1"))
    assert state.resize_width is None and state.resize_height is None
    assert state.crop_ratio == 1.0


def test_render_pipeline_order():
    pixels = np.random.default_rng(1).random((2, 4, 3)).astype(np.float32)
    state = TransformState(rotation=90, crop_ratio=1.0, resize_width=3, resize_height=3)
    out = GS.render(pixels, state)
    assert out.shape == (3, 3, 3)
    assert GS.output_size(4, 2, state) == (3, 3)


def test_render_identity_returns_input():
    pixels = np.zeros((2, 2, 3), dtype=np.float32)
    assert GS.render(pixels, TransformState()) is pixels


def test_resize_produces_requested_size():
    pixels = np.random.default_rng(2).random((20, 30, 3)).astype(np.float32)
    out = GS.resize(pixels, 8, 5)
    assert out.shape == (5, 8, 3)
    assert out.dtype == np.float32


@pytest.mark.parametrize("size", [(0, 10), (10, -1), (2.5, 3)])
def test_invalid_dimensions_are_rejected(size):
    with pytest.raises(InvalidDimension):
        validate_dimensions(*size)
    with pytest.raises(InvalidDimension):
        GS.resize(np.zeros((4, 4, 3), dtype=np.float32), *size)


def test_round_half_up():
    assert round_half_up(562.5) == 563
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2


def test_locked_draft_uses_ratio_captured_at_start():
    draft = ResizeDraft.begin(1920, 1080)
    draft.set_width(1000)
    assert draft.height == 563
    draft.set_height(563)
    assert draft.width == 1001
    draft.set_width(1920)
    assert draft.height == 1080


@pytest.mark.parametrize("target_height", [1, 7, 99, 333, 1080, 4321])
def test_locked_draft_stays_within_rounding_tolerance(target_height):
    draft = ResizeDraft.begin(4000, 3000)
    draft.set_height(target_height)
    assert abs(round_half_up(4000 / 3000 * target_height) - draft.width) <= 1


def test_preset_unlocks_and_sets_exact_size():
    draft = ResizeDraft.begin(1920, 1080)
    draft.apply_preset(find_resize_preset("instagram story"))
    assert (draft.width, draft.height) == (1080, 1920)
    assert draft.lock_aspect_ratio is False
    assert draft.preset == "Instagram Story"
    draft.set_width(540)
    assert draft.height == 1920
    assert draft.preset is None


def test_unlocked_draft_keeps_other_side():
    draft = ResizeDraft.begin(100, 50).set_lock(False)
    draft.set_width(30)
    assert draft.dimensions() == (30, 50)


def test_unknown_presets_are_rejected():
    with pytest.raises(ValueError):
        find_resize_preset("Polaroid")
    with pytest.raises(ValueError):
        crop_ratio_for("5:4")
    assert crop_ratio_for("Free") is None
