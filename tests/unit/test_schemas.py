"""
Unit Tests for Schemas
======================

Validation and normalization of the render request and the page signal.
"""

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from splatshot.models.schemas import (
    BackgroundColor,
    CameraRotation,
    CameraSpec,
    ColorSpace,
    RenderRequest,
    RenderSignal,
    Vec3,
    format_number,
)


class TestVec3:
    """Test vector parsing."""

    def test_parse_from_string(self):
        vec = Vec3.model_validate("1.5, -2, 3")
        assert vec.as_tuple() == (1.5, -2.0, 3.0)

    def test_parse_from_list(self):
        assert Vec3.model_validate([0, 0, 5]).as_tuple() == (0.0, 0.0, 5.0)

    def test_wrong_component_count(self):
        with pytest.raises(ValidationError, match="exactly 3 components"):
            Vec3.model_validate("1,2")

    def test_non_numeric_component(self):
        with pytest.raises(ValidationError, match="non-numeric"):
            Vec3.model_validate("1,a,2")

    def test_to_param(self):
        assert Vec3.model_validate("0,0,5").to_param() == "0,0,5"
        assert Vec3.model_validate("1.5,-2,0.25").to_param() == "1.5,-2,0.25"


def test_format_number_drops_integral_fraction():
    assert format_number(75.0) == "75"
    assert format_number(0.1) == "0.1"


class TestBackgroundColor:
    """Test normalization of the two background variants."""

    def test_rgb_variant_is_scaled_to_unit_range(self):
        color = BackgroundColor.model_validate("255,0,51")
        assert color.r == pytest.approx(1.0)
        assert color.g == pytest.approx(0.0)
        assert color.b == pytest.approx(0.2)
        assert color.a == 1.0

    def test_rgba_variant_is_kept(self):
        color = BackgroundColor.model_validate([0.5, 0.25, 0.0, 0.5])
        assert (color.r, color.g, color.b, color.a) == (0.5, 0.25, 0.0, 0.5)

    def test_both_variants_agree(self):
        rgb = BackgroundColor.model_validate("255,255,255")
        rgba = BackgroundColor.model_validate("1,1,1,1")
        assert rgb == rgba

    def test_rgb_out_of_range(self):
        with pytest.raises(ValidationError, match="0-255"):
            BackgroundColor.model_validate("300,0,0")

    def test_rgba_out_of_range(self):
        with pytest.raises(ValidationError, match="0.0-1.0"):
            BackgroundColor.model_validate("1.5,0,0,1")

    def test_wrong_component_count(self):
        with pytest.raises(ValidationError):
            BackgroundColor.model_validate("1,2")

    def test_to_rgb255_rounds(self):
        color = BackgroundColor.model_validate("0.5,0.25,1,1")
        assert color.to_rgb255() == (128, 64, 255)
        assert color.to_param() == "128,64,255"

    def test_default_is_opaque_black(self):
        assert BackgroundColor().to_rgb255() == (0, 0, 0)
        assert BackgroundColor().a == 1.0


class TestCameraRotation:
    """Test quaternion and matrix rotations."""

    def test_quaternion(self):
        rotation = CameraRotation.model_validate("0,0,0,1")
        assert rotation.kind == "quaternion"
        assert rotation.to_param() == "0,0,0,1"

    def test_matrix(self):
        rotation = CameraRotation.model_validate("1,0,0,0,1,0,0,0,1")
        assert rotation.kind == "matrix"

    def test_nested_matrix_rows(self):
        rotation = CameraRotation.model_validate([[1, 0, 0], [0, 1, 0], [0, 0, 1]])
        assert rotation.values == (1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0)

    def test_invalid_length(self):
        with pytest.raises(ValidationError, match="4 \\(quaternion\\) or 9"):
            CameraRotation.model_validate("1,2,3,4,5")


class TestCameraSpec:
    """Test camera validation."""

    def test_defaults(self):
        camera = CameraSpec()
        assert camera.position.as_tuple() == (0.0, 0.0, 5.0)
        assert camera.look_at.as_tuple() == (0.0, 0.0, 0.0)
        assert camera.fov_degrees == 75.0
        assert camera.rotation is None

    def test_far_must_exceed_near(self):
        with pytest.raises(ValidationError, match="greater than near clip"):
            CameraSpec(near_clip=10, far_clip=5)

    @pytest.mark.parametrize("fov", [0, -10, 180])
    def test_fov_range(self, fov):
        with pytest.raises(ValidationError):
            CameraSpec(fov_degrees=fov)


class TestRenderRequest:
    """Test the render request model."""

    def test_paths_are_resolved_to_absolute(self, splat_file, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        request = RenderRequest(splat_asset_path=Path(splat_file.name), output_path=Path("out.png"))
        assert request.splat_asset_path.is_absolute()
        assert request.splat_asset_path == splat_file.resolve()
        assert request.output_path == (tmp_path / "out.png").resolve()

    def test_missing_asset(self, tmp_path):
        with pytest.raises(ValidationError, match="not found"):
            RenderRequest(splat_asset_path=tmp_path / "missing.ply")

    def test_directory_asset(self, tmp_path):
        with pytest.raises(ValidationError, match="not a file"):
            RenderRequest(splat_asset_path=tmp_path)

    @pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="permissions not enforced")
    def test_unreadable_asset(self, splat_file):
        splat_file.chmod(0)
        try:
            with pytest.raises(ValidationError, match="not readable"):
                RenderRequest(splat_asset_path=splat_file)
        finally:
            splat_file.chmod(0o644)

    def test_defaults(self, splat_file):
        request = RenderRequest(splat_asset_path=splat_file)
        assert (request.viewport.width, request.viewport.height) == (1200, 800)
        assert request.color_space is ColorSpace.SRGB
        assert request.sh_degree is None
        assert request.label_overlay is False
        assert request.server_port == 8765

    @pytest.mark.parametrize("width,height", [(0, 300), (400, -1)])
    def test_non_positive_viewport(self, make_request, width, height):
        with pytest.raises(ValidationError):
            make_request(viewport={"width": width, "height": height})

    def test_is_immutable(self, make_request):
        request = make_request()
        with pytest.raises(ValidationError):
            request.server_port = 9000

    def test_color_space_case_insensitive(self, make_request):
        assert make_request(color_space="LINEAR").color_space is ColorSpace.LINEAR

    def test_invalid_color_space(self, make_request):
        with pytest.raises(ValidationError):
            make_request(color_space="rec2020")

    @pytest.mark.parametrize("degree", [-1, 4])
    def test_sh_degree_range(self, make_request, degree):
        with pytest.raises(ValidationError):
            make_request(sh_degree=degree)

    def test_sh_zero_differs_from_unset(self, make_request):
        assert make_request(sh_degree=0).disable_sh is True
        assert make_request(sh_degree=None).disable_sh is False
        assert make_request(sh_degree=2).disable_sh is False

    def test_model_position_accepts_string(self, make_request):
        request = make_request(model_position="1,2,3")
        assert request.model_position.as_tuple() == (1.0, 2.0, 3.0)

    @pytest.mark.parametrize("port", [0, 70000])
    def test_port_range(self, make_request, port):
        with pytest.raises(ValidationError):
            make_request(server_port=port)


class TestRenderSignal:
    """Test normalization of the page globals."""

    def test_success(self):
        signal = RenderSignal.from_page({"complete": True, "error": None, "splatCount": 42})
        assert signal.complete is True
        assert signal.error is None
        assert signal.splat_count == 42
        assert signal.splat_count_label == "42"

    def test_whitespace_error_is_kept(self):
        assert RenderSignal.from_page({"complete": True, "error": "  "}).error == "  "

    def test_empty_error_is_no_error(self):
        assert RenderSignal.from_page({"complete": True, "error": ""}).error is None

    def test_error_text_kept(self):
        assert RenderSignal.from_page({"complete": True, "error": "bad file"}).error == "bad file"

    def test_non_string_error_is_stringified(self):
        assert RenderSignal.from_page({"complete": True, "error": 7}).error == "7"

    @pytest.mark.parametrize("count", ["unknown", None, True, -3, float("nan")])
    def test_unknown_splat_count(self, count):
        signal = RenderSignal.from_page({"complete": True, "splatCount": count})
        assert signal.splat_count is None
        assert signal.splat_count_label == "unknown"

    def test_float_splat_count(self):
        assert RenderSignal.from_page({"splatCount": 10.0}).splat_count == 10

    def test_missing_payload(self):
        signal = RenderSignal.from_page(None)
        assert signal.complete is False
        assert signal.error is None
