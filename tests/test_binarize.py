import numpy as np

from markengine.tools.binarize import invert, threshold, to_grayscale


def test_grayscale_uses_luma_weights():
    img = np.zeros((1, 3, 3), dtype=np.uint8)
    img[0, 0] = (255, 0, 0)   # blue
    img[0, 1] = (0, 255, 0)   # green
    img[0, 2] = (0, 0, 255)   # red
    gray = to_grayscale(img)
    assert gray.shape == (1, 3)
    assert gray[0, 1] > gray[0, 2] > gray[0, 0]


def test_threshold_cutoff_is_inclusive_at_120():
    gray = np.array([[0, 119, 120, 121, 255]], dtype=np.uint8)
    assert threshold(gray, 120).tolist() == [[0, 0, 255, 255, 255]]


def test_invert_swaps_polarity():
    bw = np.array([[0, 255]], dtype=np.uint8)
    assert invert(bw).tolist() == [[255, 0]]
