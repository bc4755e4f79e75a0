"""Tests for operation parameter validation."""

import pytest

from ideogram_client.constants import MAX_PROMPT_LENGTH, OPERATION_CONSTRAINTS
from ideogram_client.errors import ErrorKind, ParameterError
from ideogram_client.params import validate_operation_params


class TestPrompt:
    def test_valid_prompt(self):
        validate_operation_params("generate-v3", {"prompt": "a red fox"})

    @pytest.mark.parametrize("prompt", [None, "", 42])
    def test_missing_or_non_string(self, prompt):
        with pytest.raises(ParameterError, match="Prompt is required and must be a string"):
            validate_operation_params("generate-v3", {"prompt": prompt})

    def test_at_max_length(self):
        validate_operation_params("edit-v3", {"prompt": "a" * MAX_PROMPT_LENGTH})

    def test_over_max_length(self):
        with pytest.raises(
            ParameterError, match="Prompt exceeds maximum length of 10000 characters"
        ) as exc_info:
            validate_operation_params("remix-v3", {"prompt": "a" * (MAX_PROMPT_LENGTH + 1)})
        assert exc_info.value.parameter == "prompt"
        assert exc_info.value.kind is ErrorKind.PARAMETER

    def test_prompt_optional_for_upscale(self):
        validate_operation_params("upscale", {"prompt": None, "num_images": 1})


class TestOptions:
    def test_listed_options_in_message(self):
        with pytest.raises(ParameterError) as exc_info:
            validate_operation_params(
                "generate-v3", {"prompt": "x", "rendering_speed": "WARP"}
            )
        assert exc_info.value.message == (
            "Invalid rendering speed 'WARP'. Must be one of: FLASH, TURBO, DEFAULT, QUALITY"
        )

    def test_long_tables_not_listed(self):
        with pytest.raises(ParameterError) as exc_info:
            validate_operation_params("generate-v3", {"prompt": "x", "resolution": "1x1"})
        assert exc_info.value.message == (
            "Invalid resolution '1x1'. Must be one of the supported resolutions."
        )

    def test_style_preset_checked(self):
        validate_operation_params("remix-v3", {"prompt": "x", "style_preset": "BAUHAUS"})
        with pytest.raises(ParameterError, match="style preset"):
            validate_operation_params("remix-v3", {"prompt": "x", "style_preset": "NOPE"})

    def test_options_are_case_sensitive(self):
        with pytest.raises(ParameterError, match="magic prompt"):
            validate_operation_params("generate-v3", {"prompt": "x", "magic_prompt": "auto"})

    def test_reframe_requires_resolution(self):
        with pytest.raises(ParameterError, match="resolution is required"):
            validate_operation_params("reframe-v3", {"num_images": 1})

    def test_reframe_valid(self):
        validate_operation_params("reframe-v3", {"resolution": "1024x1024"})

    def test_describe_model_version(self):
        validate_operation_params("describe", {"describe_model_version": "V_3"})
        with pytest.raises(ParameterError, match="Must be one of: V_2, V_3"):
            validate_operation_params("describe", {"describe_model_version": "V_9"})

    def test_unconstrained_fields_ignored(self):
        validate_operation_params(
            "generate-v3", {"prompt": "x", "negative_prompt": "blurry", "seed": 7}
        )


class TestNumericRanges:
    @pytest.mark.parametrize("count", [1, 8, "4"])
    def test_num_images_in_range(self, count):
        validate_operation_params("generate-v3", {"prompt": "x", "num_images": count})

    @pytest.mark.parametrize("count", [0, 9, "many", True])
    def test_num_images_out_of_range(self, count):
        with pytest.raises(ParameterError, match="num_images must be between 1 and 8"):
            validate_operation_params("generate-v3", {"prompt": "x", "num_images": count})

    def test_upscale_allows_four(self):
        validate_operation_params("upscale", {"num_images": 4})
        with pytest.raises(ParameterError, match="between 1 and 4"):
            validate_operation_params("upscale", {"num_images": 5})

    @pytest.mark.parametrize("weight", [-1, 101])
    def test_image_weight(self, weight):
        with pytest.raises(ParameterError, match="image_weight must be between 0 and 100"):
            validate_operation_params("remix-v3", {"prompt": "x", "image_weight": weight})

    def test_resemblance_and_detail(self):
        validate_operation_params("upscale", {"resemblance": 0, "detail": 100})
        with pytest.raises(ParameterError, match="detail"):
            validate_operation_params("upscale", {"detail": 150})


def test_unknown_operation():
    with pytest.raises(ParameterError, match="Unknown operation: paint"):
        validate_operation_params("paint", {})


def test_every_operation_has_constraints():
    assert set(OPERATION_CONSTRAINTS) == {
        "generate-v3",
        "edit-v3",
        "remix-v3",
        "reframe-v3",
        "replace-background-v3",
        "upscale",
        "describe",
    }
