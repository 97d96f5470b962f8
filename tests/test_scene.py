"""Tests for the Scene model and its mutators."""

import math
import random

import numpy as np
import pytest

from storycompose.errors import SceneFrozenError, ValidationError
from storycompose.media import load_media
from storycompose.scene import (
    Background,
    Element,
    FontStyle,
    Position,
    Scene,
    parse_font_style,
)


@pytest.fixture
def scene():
    return Scene()


class TestLifecycle:
    def test_new_scene_is_empty(self, scene):
        assert scene.is_empty
        assert scene.state == "empty"

    def test_text_populates(self, scene):
        scene.set_text("Hello")
        assert scene.state == "populated"

    def test_media_populates(self, scene, image_file):
        scene.set_media(load_media(image_file))
        assert scene.state == "populated"
        assert scene.has(Element.MEDIA)

    def test_defaults_match_editor(self, scene):
        assert scene.font_size == 18
        assert scene.font_style is FontStyle.NORMAL
        assert scene.text_color == (255, 255, 255)
        assert scene.background.is_gradient


class TestText:
    def test_long_text_truncated_to_100(self, scene):
        scene.set_text("x" * 150)
        assert scene.text == "x" * 100

    def test_truncation_keeps_prefix(self, scene):
        text = "".join(chr(ord("a") + i % 26) for i in range(250))
        scene.set_text(text)
        assert scene.text == text[:100]

    def test_short_text_unchanged(self, scene):
        scene.set_text("Hello")
        assert scene.text == "Hello"

    def test_empty_string_clears(self, scene):
        scene.set_text("Hello")
        scene.set_text("")
        assert scene.text is None
        assert scene.is_empty

    def test_non_string_rejected(self, scene):
        with pytest.raises(ValidationError):
            scene.set_text(42)


class TestFontSize:
    def test_clamps_high(self, scene):
        scene.set_font_size(100)
        assert scene.font_size == 48

    def test_clamps_low(self, scene):
        scene.set_font_size(1)
        assert scene.font_size == 12

    def test_snaps_to_step_grid(self, scene):
        scene.set_font_size(21)
        assert scene.font_size in (20, 22)
        assert (scene.font_size - 12) % 2 == 0

    def test_increase_and_decrease_by_two(self, scene):
        scene.increase_font_size()
        assert scene.font_size == 20
        scene.decrease_font_size()
        scene.decrease_font_size()
        assert scene.font_size == 16

    def test_stops_at_bounds(self, scene):
        for _ in range(30):
            scene.increase_font_size()
        assert scene.font_size == 48
        for _ in range(30):
            scene.decrease_font_size()
        assert scene.font_size == 12

    def test_random_walk_stays_in_range_with_two_steps(self, scene):
        rng = random.Random(7)
        for _ in range(500):
            before = scene.font_size
            op = rng.choice(["up", "down", "set"])
            if op == "up":
                scene.increase_font_size()
                assert scene.font_size - before in (0, 2)
            elif op == "down":
                scene.decrease_font_size()
                assert before - scene.font_size in (0, 2)
            else:
                scene.set_font_size(rng.uniform(-50, 200))
            assert 12 <= scene.font_size <= 48
            assert scene.font_size % 2 == 0

    def test_non_finite_rejected(self, scene):
        with pytest.raises(ValidationError):
            scene.set_font_size(float("nan"))
        assert scene.font_size == 18


class TestFontStyle:
    @pytest.mark.parametrize("value,expected", [
        ("normal", FontStyle.NORMAL),
        ("bold", FontStyle.BOLD),
        ("italic", FontStyle.ITALIC),
        ("bold-italic", FontStyle.BOLD_ITALIC),
        ("bold italic", FontStyle.BOLD_ITALIC),
        (FontStyle.BOLD, FontStyle.BOLD),
    ])
    def test_accepted_spellings(self, value, expected):
        assert parse_font_style(value) is expected

    def test_invalid_style_rejected(self, scene):
        with pytest.raises(ValidationError, match="Invalid font style"):
            scene.set_font_style("oblique")
        assert scene.font_style is FontStyle.NORMAL

    def test_traits(self):
        assert FontStyle.BOLD_ITALIC.is_bold and FontStyle.BOLD_ITALIC.is_italic
        assert not FontStyle.ITALIC.is_bold


class TestColorsAndBackground:
    def test_palette_text_color(self, scene):
        scene.set_text_color("#facc15")
        assert scene.text_color == (250, 204, 21)

    def test_off_palette_text_color_rejected(self, scene):
        with pytest.raises(ValidationError, match="not in the palette"):
            scene.set_text_color("#123456")

    def test_unlocked_palette_accepts_any_hex(self):
        scene = Scene(palette_locked=False)
        scene.set_text_color("#123456")
        assert scene.text_color == (0x12, 0x34, 0x56)

    def test_solid_background(self, scene):
        scene.set_background("#000000")
        assert not scene.background.is_gradient
        assert scene.background.color == (0, 0, 0)

    def test_palette_match_ignores_case(self, scene):
        scene.set_background("#FFFFFF")
        assert scene.background.color == (255, 255, 255)
        scene.set_background("LINEAR-GRADIENT(135deg, #34D399, #10B981)")
        assert scene.background.is_gradient
        scene.set_text_color("#FFFFFF")
        assert scene.text_color == (255, 255, 255)

    def test_non_string_background_rejected(self, scene):
        with pytest.raises(ValidationError, match="string"):
            scene.set_background(0x000000)

    def test_off_palette_background_rejected(self, scene):
        before = scene.background
        with pytest.raises(ValidationError):
            scene.set_background("#010203")
        assert scene.background is before

    def test_unlocked_invalid_background_rejected(self):
        scene = Scene(palette_locked=False)
        with pytest.raises(ValidationError):
            scene.set_background("plaid")

    def test_background_render_solid(self):
        arr = Background.parse("#808080").render(4, 3)
        assert arr.shape == (3, 4, 3)
        assert np.all(arr == 128)


class TestPositions:
    def test_move_accumulates(self, scene):
        scene.move(Element.TEXT, 5, -3)
        scene.move(Element.TEXT, 1, 1)
        assert scene.text_position == Position(6, -2)

    @pytest.mark.parametrize("bad", [math.inf, -math.inf, math.nan])
    def test_non_finite_move_rejected(self, scene, bad):
        scene.set_position(Element.MEDIA, 10, 20)
        with pytest.raises(ValidationError, match="finite"):
            scene.move(Element.MEDIA, bad, 0)
        assert scene.media_position == Position(10, 20)

    def test_generation_bumps_only_on_appearance(self, scene, image_file):
        scene.set_text("a")
        scene.set_text("ab")
        assert scene.generation[Element.TEXT] == 1
        scene.set_text("")
        scene.set_text("again")
        assert scene.generation[Element.TEXT] == 2
        asset = load_media(image_file)
        scene.set_media(asset)
        scene.clear_media()
        scene.set_media(asset)
        assert scene.generation[Element.MEDIA] == 2

    def test_new_media_resets_position(self, scene, image_file):
        scene.set_position(Element.MEDIA, 50, 50)
        scene.set_media(load_media(image_file))
        assert scene.media_position == Position(0, 0)

    def test_set_media_rejects_non_asset(self, scene):
        with pytest.raises(ValidationError):
            scene.set_media("photo.png")


class TestFreeze:
    def test_frozen_scene_rejects_every_mutator(self, scene, image_file):
        asset = load_media(image_file)
        scene.set_text("Hello")
        scene.freeze()
        mutators = [
            lambda: scene.set_text("changed"),
            lambda: scene.set_font_size(30),
            lambda: scene.increase_font_size(),
            lambda: scene.set_font_style("bold"),
            lambda: scene.set_text_color("#000000"),
            lambda: scene.set_background("#000000"),
            lambda: scene.set_media(asset),
            lambda: scene.clear_media(),
            lambda: scene.move(Element.TEXT, 1, 1),
        ]
        for mutate in mutators:
            with pytest.raises(SceneFrozenError):
                mutate()
        assert scene.text == "Hello"
        assert scene.font_size == 18

    def test_thaw_allows_edits(self, scene):
        scene.freeze()
        scene.thaw()
        scene.set_text("ok")
        assert scene.text == "ok"
