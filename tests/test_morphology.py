import numpy as np
import pytest

from mapgen_lib.analysis.morphology import (
    MaskRefiner,
    RefineParams,
    content_mask,
    dilate,
    downsample_mask,
    erode,
    refine,
    remove_small_components,
)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


def test_opening_never_grows_beyond_dilated_input(rng):
    for _ in range(20):
        mask = rng.random((40, 50)) > 0.45
        opened = dilate(erode(mask, 1), 1)
        assert not (opened & ~mask).any()


def test_refine_is_subset_of_dilated_input(rng):
    for _ in range(10):
        mask = rng.random((32, 32)) > 0.3
        out = refine(mask, erode_radius=1, dilate_radius=2, min_component_size=5)
        assert not (out & ~dilate(mask, 2)).any()


def test_isolated_pixel_removed_and_region_kept():
    mask = np.zeros((60, 60), dtype=bool)
    mask[5:25, 5:30] = True  # 500 px
    mask[50, 50] = True
    out = remove_small_components(mask, 10)
    assert out[5:25, 5:30].all()
    assert not out[50, 50]
    assert out.sum() == 500


def test_diagonal_neighbours_are_separate_components():
    mask = np.zeros((10, 10), dtype=bool)
    mask[2:5, 2:5] = True
    mask[5, 5] = True
    out = remove_small_components(mask, 2)
    assert not out[5, 5]
    assert out[2:5, 2:5].all()


def test_erode_treats_outside_as_empty():
    mask = np.ones((6, 6), dtype=bool)
    out = erode(mask, 1)
    assert not out[0, :].any()
    assert not out[:, -1].any()
    assert out[1:5, 1:5].all()


def test_dilate_grows_by_radius():
    mask = np.zeros((9, 9), dtype=bool)
    mask[4, 4] = True
    out = dilate(mask, 2)
    assert out[2:7, 2:7].all()
    assert out.sum() == 25


def test_zero_radius_is_identity(rng):
    mask = rng.random((8, 8)) > 0.5
    assert np.array_equal(erode(mask, 0), mask)
    assert np.array_equal(dilate(mask, 0), mask)


def test_refiner_rejects_dilate_smaller_than_erode():
    with pytest.raises(ValueError):
        MaskRefiner(RefineParams(erode_radius=3, dilate_radius=1))
    with pytest.raises(ValueError):
        refine(np.zeros((4, 4), dtype=bool), erode_radius=2, dilate_radius=1)


def test_refine_drops_thin_lines():
    mask = np.zeros((40, 40), dtype=bool)
    mask[10:30, 10:30] = True
    mask[35, :] = True  # one pixel thick, gone after erosion
    out = MaskRefiner().refine(mask)
    assert not out[35, 20]
    assert out[20, 20]


def test_content_mask_thresholds():
    rgba = np.zeros((2, 3, 4), dtype=np.uint8)
    rgba[0, 0] = (40, 40, 40, 255)  # dark, opaque -> content
    rgba[0, 1] = (250, 250, 250, 255)  # bright glare
    rgba[0, 2] = (40, 40, 40, 5)  # nearly transparent
    rgba[1, :] = (90, 120, 60, 200)
    mask = content_mask(rgba, brightness_threshold=200, alpha_threshold=10)
    assert mask.tolist() == [[True, False, False], [True, True, True]]


def test_content_mask_requires_rgba():
    with pytest.raises(ValueError):
        content_mask(np.zeros((4, 4, 3), dtype=np.uint8))


def test_downsample_coverage():
    mask = np.zeros((8, 8), dtype=bool)
    mask[0:4, 0:2] = True  # half of cell (0, 0)
    mask[4:8, 4:5] = True  # a quarter of cell (1, 1)
    out = downsample_mask(mask, 4, coverage=0.5)
    assert out.tolist() == [[True, False], [False, False]]


def test_downsample_partial_edge_block():
    mask = np.zeros((5, 5), dtype=bool)
    mask[4, 4] = True  # the whole 1x1 corner block
    out = downsample_mask(mask, 4)
    assert out.shape == (2, 2)
    assert out[1, 1]
    assert not out[0, 0]
