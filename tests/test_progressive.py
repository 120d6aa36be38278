"""Tests for the progressive renderer.

This module tests the ProgressiveRenderer class including:
- Initialization and setup
- Progressive sample accumulation
- Batch rendering
- Progress callbacks and generators
- Reset and resize
- Image output in various formats

Note: Imports are done inside test methods to avoid Taichi initialization issues.
The conftest.py fixture initializes Taichi before tests run.
"""

import io

import numpy as np
import pytest


@pytest.fixture
def showcase_scene(default_camera):
    """The three-spheres scene viewed through the default camera."""
    from pathtracer.scene.presets import create_three_spheres_scene

    scene, _ = create_three_spheres_scene()
    return scene


class TestProgressiveRendererInit:
    """Test ProgressiveRenderer initialization."""

    def test_init_creates_render_target(self):
        """Initialization sets up an empty render target of the given size."""
        from pathtracer.core.integrator import get_image_dimensions
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(128, 96)

        assert renderer.width == 128
        assert renderer.height == 96
        assert renderer.sample_count == 0
        assert get_image_dimensions() == (128, 96)

    def test_init_rejects_oversized_dimensions(self):
        """Dimensions past the preallocated buffers are rejected."""
        from pathtracer.core.progressive import ProgressiveRenderer

        with pytest.raises(ValueError, match="exceed maximum"):
            ProgressiveRenderer(4096, 100)

    def test_init_rejects_negative_depth(self):
        """max_depth must be non-negative."""
        from pathtracer.core.progressive import ProgressiveRenderer

        with pytest.raises(ValueError, match="max_depth"):
            ProgressiveRenderer(8, 8, max_depth=-1)

    def test_random_seed_is_recorded(self):
        """seed=None draws a seed and keeps it for reproduction."""
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(8, 8, seed=None)
        assert isinstance(renderer.seed, int)

    def test_repr(self):
        """repr shows size and sample count."""
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(16, 8)
        assert repr(renderer) == "ProgressiveRenderer(width=16, height=8, samples=0)"


class TestProgressiveRendering:
    """Sample accumulation and progress reporting."""

    def test_render_accumulates(self, showcase_scene):
        """Successive render calls add to the sample count."""
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(8, 6, max_depth=5)
        renderer.render(3)
        renderer.render(2)
        assert renderer.sample_count == 5

    def test_callback_reports_batches(self, showcase_scene):
        """The callback runs once per batch, with the final batch truncated."""
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(8, 6, max_depth=5)
        progress = []
        renderer.render(10, batch_size=3, callback=lambda c, t: progress.append((c, t)))

        assert progress == [(3, 10), (6, 10), (9, 10), (10, 10)]

    def test_generator_continues_from_current_count(self, showcase_scene):
        """render_progressive targets the current count plus num_samples."""
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(8, 6, max_depth=5)
        renderer.render(2)

        steps = list(renderer.render_progressive(4, batch_size=2))
        assert steps == [(4, 6), (6, 6)]

    @pytest.mark.parametrize("num_samples", [0, -3])
    def test_non_positive_sample_count(self, showcase_scene, num_samples):
        """Both entry points reject a sample count below one before rendering."""
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(8, 6)
        with pytest.raises(ValueError, match="num_samples"):
            renderer.render(num_samples)
        with pytest.raises(ValueError, match="num_samples"):
            list(renderer.render_progressive(num_samples))
        assert renderer.sample_count == 0

    def test_invalid_batch_size(self, showcase_scene):
        """batch_size must be positive."""
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(8, 6)
        with pytest.raises(ValueError, match="batch_size"):
            renderer.render(4, batch_size=0)
        with pytest.raises(ValueError, match="batch_size"):
            list(renderer.render_progressive(4, batch_size=0))
        assert renderer.sample_count == 0

    def test_batch_size_does_not_change_result(self, showcase_scene):
        """Renders with the same seed agree regardless of batching."""
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(10, 6, max_depth=8, seed=3)
        renderer.render(6, batch_size=6)
        single = renderer.get_image_numpy()

        renderer = ProgressiveRenderer(10, 6, max_depth=8, seed=3)
        renderer.render(6, batch_size=4)
        batched = renderer.get_image_numpy()

        np.testing.assert_array_equal(single, batched)


class TestProgressiveRendererReset:
    """Reset and resize."""

    def test_reset_reproduces_render(self, showcase_scene):
        """After reset the same render comes out again."""
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(10, 6, max_depth=8, seed=9)
        renderer.render(3)
        first = renderer.get_image_numpy()

        renderer.reset()
        assert renderer.sample_count == 0
        renderer.render(3)

        np.testing.assert_array_equal(first, renderer.get_image_numpy())

    def test_resize(self, showcase_scene):
        """resize changes the image shape and clears samples."""
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(10, 6, max_depth=4)
        renderer.render(2)
        renderer.resize(5, 4)

        assert renderer.width == 5
        assert renderer.height == 4
        assert renderer.sample_count == 0
        renderer.render(1)
        assert renderer.get_image_numpy().shape == (4, 5, 3)


class TestProgressiveRendererOutput:
    """Image accessors and file output."""

    def test_image_shapes_and_types(self, showcase_scene):
        """Float and 8-bit images are (height, width, 3)."""
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(12, 7, max_depth=4)
        renderer.render(2)

        image = renderer.get_image_numpy()
        assert image.shape == (7, 12, 3)
        assert image.dtype == np.float32

        pixels = renderer.get_image_uint8()
        assert pixels.shape == (7, 12, 3)
        assert pixels.dtype == np.uint8

    def test_save_ppm_to_stream(self, showcase_scene):
        """save_ppm writes a P3 header and one line per pixel."""
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(4, 3, max_depth=4)
        renderer.render(1)

        buffer = io.StringIO()
        renderer.save_ppm(buffer)
        lines = buffer.getvalue().splitlines()

        assert lines[:3] == ["P3", "4 3", "255"]
        assert len(lines) == 3 + 4 * 3

    def test_save_ppm_to_file_matches_uint8(self, showcase_scene, tmp_path):
        """The file holds exactly the 8-bit image."""
        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(4, 3, max_depth=4)
        renderer.render(2)

        path = tmp_path / "out.ppm"
        renderer.save_ppm(path)
        values = [int(v) for v in path.read_text().split()[4:]]

        np.testing.assert_array_equal(
            np.array(values).reshape(3, 4, 3), renderer.get_image_uint8()
        )

    def test_save_png(self, showcase_scene, tmp_path):
        """save_png writes an RGB image readable by Pillow."""
        from PIL import Image

        from pathtracer.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(6, 4, max_depth=4)
        renderer.render(1)

        path = tmp_path / "out.png"
        renderer.save_png(path)

        with Image.open(path) as img:
            assert img.size == (6, 4)
            assert img.mode == "RGB"
            np.testing.assert_array_equal(np.asarray(img), renderer.get_image_uint8())
