import random

import pytest
from PIL import Image

from asset_verify.core.errors import InputError, LengthMismatchError
from asset_verify.services.image_hash import are_similar, average_hash, hamming_distance, hash_similarity
from fakes import half_and_half_png, make_png


def random_hash(rng, bits=64):
    return "".join(rng.choice("01") for _ in range(bits))


def test_average_hash_row_major_bits():
    # Left column bright, everything else dark
    pixels = [220 if i % 8 == 0 else 30 for i in range(64)]
    expected = "".join("1" if i % 8 == 0 else "0" for i in range(64))
    assert average_hash(make_png(pixels)) == expected


def test_average_hash_uniform_image_is_all_zeros():
    assert average_hash(make_png([128] * 64)) == "0" * 64


def test_average_hash_downsamples_large_images():
    result = average_hash(half_and_half_png(size=64))
    assert len(result) == 64
    assert result[:8] == "1" * 8
    assert result[-8:] == "0" * 8


def test_average_hash_tolerates_recompression():
    original = average_hash(half_and_half_png(size=64))
    recompressed = average_hash(half_and_half_png(size=64, fmt="JPEG", quality=90))
    assert hamming_distance(original, recompressed) <= 10


def test_average_hash_rejects_undecodable_bytes():
    with pytest.raises(InputError):
        average_hash(b"\x89PNG but not really")
    with pytest.raises(InputError):
        average_hash(b"")


def test_average_hash_rejects_decompression_bombs(monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    with pytest.raises(InputError):
        average_hash(half_and_half_png(size=64))


def test_hamming_distance_properties():
    rng = random.Random(7)
    for _ in range(50):
        x, y = random_hash(rng), random_hash(rng)
        assert hamming_distance(x, y) == hamming_distance(y, x)
        assert hamming_distance(x, x) == 0
        assert 0 <= hamming_distance(x, y) <= 64


def test_hamming_distance_counts_differing_bits():
    assert hamming_distance("0000", "0110") == 2
    assert hamming_distance("1" * 64, "0" * 64) == 64


def test_hamming_distance_rejects_mismatched_lengths():
    with pytest.raises(LengthMismatchError) as excinfo:
        hamming_distance("0" * 64, "0" * 256)
    assert excinfo.value.left_length == 64
    assert excinfo.value.right_length == 256


def test_are_similar_matches_distance_threshold():
    rng = random.Random(11)
    for _ in range(20):
        x, y = random_hash(rng), random_hash(rng)
        distance = hamming_distance(x, y)
        for threshold in (0, 5, 10, 32, distance, distance - 1, 64):
            assert are_similar(x, y, threshold) == (distance <= threshold)


def test_are_similar_default_threshold_is_ten():
    base = "0" * 64
    assert are_similar(base, "1" * 10 + "0" * 54)
    assert not are_similar(base, "1" * 11 + "0" * 53)


def test_hash_similarity():
    base = "0" * 64
    assert hash_similarity(base, "1" * 5 + "0" * 59) == 0.921875
    assert hash_similarity(base, base) == 1.0
