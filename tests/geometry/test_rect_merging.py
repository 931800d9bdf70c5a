from __future__ import annotations

import itertools
import random

from textlayer.geometry.rects import Rect, merge_into_lines, rect_maps_equal, rects_equal


def test_merge_of_empty_input_is_empty() -> None:
    assert merge_into_lines([]) == []


def test_merge_of_single_rect_returns_it_unchanged() -> None:
    rect = Rect(x=5, y=7, width=10, height=12)

    assert merge_into_lines([rect]) == [rect]


def test_rects_on_one_line_merge_into_bounding_rect() -> None:
    merged = merge_into_lines(
        [
            Rect(x=60, y=1, width=50, height=12),
            Rect(x=0, y=0, width=50, height=10),
        ]
    )

    assert merged == [Rect(x=0, y=0, width=110, height=12)]


def test_line_tolerance_is_chained_through_the_last_rect() -> None:
    # 0 -> 2 -> 4: each step is within tolerance even though 0 -> 4 is not.
    rects = [
        Rect(x=0, y=0, width=10, height=10),
        Rect(x=20, y=2, width=10, height=10),
        Rect(x=40, y=4, width=10, height=10),
    ]

    merged = merge_into_lines(rects, y_tolerance=3)

    assert merged == [Rect(x=0, y=0, width=50, height=10)]


def test_separate_lines_stay_separate_and_ordered_top_down() -> None:
    rects = [
        Rect(x=0, y=30, width=40, height=12),
        Rect(x=10, y=0, width=40, height=12),
        Rect(x=60, y=31, width=20, height=12),
    ]

    merged = merge_into_lines(rects)

    assert merged == [
        Rect(x=10, y=0, width=40, height=12),
        Rect(x=0, y=30, width=80, height=12),
    ]


def test_merge_never_grows_and_is_a_fixed_point_on_its_output() -> None:
    rects = [
        Rect(x=0, y=0, width=10, height=10),
        Rect(x=12, y=1, width=10, height=10),
        Rect(x=0, y=20, width=30, height=10),
        Rect(x=35, y=22, width=5, height=10),
        Rect(x=0, y=50, width=5, height=5),
    ]

    once = merge_into_lines(rects)
    twice = merge_into_lines(once)

    assert len(once) <= len(rects)
    assert twice == once


def test_overlap_is_strict_and_touching_edges_do_not_count() -> None:
    base = Rect(x=0, y=0, width=10, height=10)

    assert base.overlaps(Rect(x=5, y=5, width=10, height=10))
    assert not base.overlaps(Rect(x=10, y=0, width=10, height=10))
    assert not base.overlaps(Rect(x=0, y=10, width=10, height=10))


def test_rect_transformations() -> None:
    rect = Rect(x=10, y=20, width=30, height=40)

    assert rect.translate(-10, 5) == Rect(x=0, y=25, width=30, height=40)
    assert rect.scale(0.5) == Rect(x=5, y=10, width=15, height=20)
    assert Rect.from_dict(rect.to_dict()) == rect
    assert rect.right == 40
    assert rect.bottom == 60


def test_rect_comparison_uses_half_unit_tolerance() -> None:
    a = [Rect(x=0, y=0, width=10, height=10)]
    close = [Rect(x=0.4, y=0.2, width=10.3, height=9.8)]
    far = [Rect(x=1, y=0, width=10, height=10)]

    assert rects_equal(a, close)
    assert not rects_equal(a, far)
    assert not rects_equal(a, a + a)
    assert rect_maps_equal({1: a}, {1: close})
    assert not rect_maps_equal({1: a}, {2: a})
    assert not rect_maps_equal({1: a}, {1: a, 2: a})


def test_three_rect_example_merges_into_two_lines() -> None:
    merged = merge_into_lines(
        [
            Rect(x=0, y=0, width=10, height=10),
            Rect(x=10, y=1, width=10, height=10),
            Rect(x=0, y=20, width=5, height=10),
        ]
    )

    assert merged == [Rect(x=0, y=0, width=20, height=10), Rect(x=0, y=20, width=5, height=10)]


def test_jittered_line_merges_the_same_in_any_input_order() -> None:
    rects = [
        Rect(x=0, y=0, width=10, height=10),
        Rect(x=100, y=2, width=10, height=10),
        Rect(x=50, y=4, width=10, height=10),
    ]
    expected = [Rect(x=0, y=0, width=110, height=10)]

    for order in itertools.permutations(rects):
        merged = merge_into_lines(order, y_tolerance=3)
        assert merged == expected
        assert merge_into_lines(merged, y_tolerance=3) == merged


def test_random_jitter_is_order_independent_and_a_fixed_point() -> None:
    rng = random.Random(20240611)

    for _ in range(300):
        rects = [
            Rect(x=rng.uniform(0, 500), y=rng.choice((0, 15, 30, 45)) + rng.uniform(-4, 4), width=20, height=10)
            for _ in range(rng.randint(2, 9))
        ]
        shuffled = list(rects)
        rng.shuffle(shuffled)

        merged = merge_into_lines(rects)

        assert merge_into_lines(shuffled) == merged
        assert merge_into_lines(merged) == merged
        assert all(lower.y - upper.y >= 3.0 for upper, lower in zip(merged, merged[1:]))
