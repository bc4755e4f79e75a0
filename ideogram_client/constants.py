"""Ideogram API endpoints and option tables."""

BASE_URL = "https://api.ideogram.ai"
API_VERSION = "v1"

ENDPOINTS = {
    "generate-v3": f"/{API_VERSION}/ideogram-v3/generate",
    "edit-v3": f"/{API_VERSION}/ideogram-v3/edit",
    "remix-v3": f"/{API_VERSION}/ideogram-v3/remix",
    "reframe-v3": f"/{API_VERSION}/ideogram-v3/reframe",
    "replace-background-v3": f"/{API_VERSION}/ideogram-v3/replace-background",
    "upscale": "/upscale",
    "describe": "/describe",
}

# Valid resolutions for Ideogram 3.0
RESOLUTIONS = [
    "512x1536", "576x1408", "576x1472", "576x1536",
    "640x1344", "640x1408", "640x1472", "640x1536",
    "704x1152", "704x1216", "704x1280", "704x1344", "704x1408", "704x1472",
    "736x1312", "768x1088", "768x1216", "768x1280", "768x1344",
    "800x1280", "832x960", "832x1024", "832x1088", "832x1152", "832x1216", "832x1248",
    "864x1152", "896x960", "896x1024", "896x1088", "896x1120", "896x1152",
    "960x832", "960x896", "960x1024", "960x1088",
    "1024x832", "1024x896", "1024x960", "1024x1024",
    "1088x768", "1088x832", "1088x896", "1088x960",
    "1120x896", "1152x704", "1152x832", "1152x864", "1152x896",
    "1216x704", "1216x768", "1216x832",
    "1248x832", "1280x704", "1280x768", "1280x800",
    "1312x736", "1344x640", "1344x704", "1344x768",
    "1408x576", "1408x640", "1408x704",
    "1472x576", "1472x640", "1472x704",
    "1536x512", "1536x576", "1536x640",
]  # fmt: skip

ASPECT_RATIOS = [
    "1x3", "3x1", "1x2", "2x1", "9x16", "16x9", "10x16", "16x10",
    "2x3", "3x2", "3x4", "4x3", "4x5", "5x4", "1x1",
]  # fmt: skip

RENDERING_SPEEDS = ["FLASH", "TURBO", "DEFAULT", "QUALITY"]

MAGIC_PROMPT_OPTIONS = ["AUTO", "ON", "OFF"]

STYLE_TYPES = ["AUTO", "GENERAL", "REALISTIC", "DESIGN", "FICTION"]

STYLE_PRESETS = [
    "80S_ILLUSTRATION", "90S_NOSTALGIA", "ABSTRACT_ORGANIC", "ANALOG_NOSTALGIA",
    "ART_BRUT", "ART_DECO", "ART_POSTER", "AURA", "AVANT_GARDE", "BAUHAUS",
    "BLUEPRINT", "BLURRY_MOTION", "BRIGHT_ART", "C4D_CARTOON", "CHILDRENS_BOOK",
    "COLLAGE", "COLORING_BOOK_I", "COLORING_BOOK_II", "CUBISM", "DARK_AURA",
    "DOODLE", "DOUBLE_EXPOSURE", "DRAMATIC_CINEMA", "EDITORIAL", "EMOTIONAL_MINIMAL",
    "ETHEREAL_PARTY", "EXPIRED_FILM", "FLAT_ART", "FLAT_VECTOR", "FOREST_REVERIE",
    "GEO_MINIMALIST", "GLASS_PRISM", "GOLDEN_HOUR", "GRAFFITI_I", "GRAFFITI_II",
    "HALFTONE_PRINT", "HIGH_CONTRAST", "HIPPIE_ERA", "ICONIC", "JAPANDI_FUSION",
    "JAZZY", "LONG_EXPOSURE", "MAGAZINE_EDITORIAL", "MINIMAL_ILLUSTRATION",
    "MIXED_MEDIA", "MONOCHROME", "NIGHTLIFE", "OIL_PAINTING", "OLD_CARTOONS",
    "PAINT_GESTURE", "POP_ART", "RETRO_ETCHING", "RIVIERA_POP", "SPOTLIGHT_80S",
    "STYLIZED_RED", "SURREAL_COLLAGE", "TRAVEL_POSTER", "VINTAGE_GEO",
    "VINTAGE_POSTER", "WATERCOLOR", "WEIRD", "WOODBLOCK_PRINT",
]  # fmt: skip

COLOR_PALETTE_PRESETS = [
    "EMBER", "FRESH", "JUNGLE", "MAGIC", "MELON", "MOSAIC", "PASTEL", "ULTRAMARINE",
]  # fmt: skip

DESCRIBE_MODEL_VERSIONS = ["V_2", "V_3"]

MAX_PROMPT_LENGTH = 10000

_NUM_IMAGES = {"min": 1, "max": 8, "default": 1}

# Per-operation constraints checked before any request is sent
OPERATION_CONSTRAINTS = {
    "generate-v3": {
        "prompt": {"required": True, "max_length": MAX_PROMPT_LENGTH},
        "resolution": {"options": RESOLUTIONS},
        "aspect_ratio": {"options": ASPECT_RATIOS},
        "rendering_speed": {"options": RENDERING_SPEEDS, "default": "DEFAULT"},
        "magic_prompt": {"options": MAGIC_PROMPT_OPTIONS, "default": "AUTO"},
        "num_images": _NUM_IMAGES,
        "style_type": {"options": STYLE_TYPES},
        "style_preset": {"options": STYLE_PRESETS},
    },
    "edit-v3": {
        "prompt": {"required": True, "max_length": MAX_PROMPT_LENGTH},
        "magic_prompt": {"options": MAGIC_PROMPT_OPTIONS, "default": "AUTO"},
        "num_images": _NUM_IMAGES,
        "rendering_speed": {"options": RENDERING_SPEEDS, "default": "DEFAULT"},
        "style_type": {"options": STYLE_TYPES},
        "style_preset": {"options": STYLE_PRESETS},
    },
    "remix-v3": {
        "prompt": {"required": True, "max_length": MAX_PROMPT_LENGTH},
        "image_weight": {"min": 0, "max": 100},
        "resolution": {"options": RESOLUTIONS},
        "aspect_ratio": {"options": ASPECT_RATIOS},
        "rendering_speed": {"options": RENDERING_SPEEDS, "default": "DEFAULT"},
        "magic_prompt": {"options": MAGIC_PROMPT_OPTIONS, "default": "AUTO"},
        "num_images": _NUM_IMAGES,
        "style_type": {"options": STYLE_TYPES},
        "style_preset": {"options": STYLE_PRESETS},
    },
    "reframe-v3": {
        "resolution": {"required": True, "options": RESOLUTIONS},
        "num_images": _NUM_IMAGES,
        "rendering_speed": {"options": RENDERING_SPEEDS, "default": "DEFAULT"},
        "style_preset": {"options": STYLE_PRESETS},
    },
    "replace-background-v3": {
        "prompt": {"required": True, "max_length": MAX_PROMPT_LENGTH},
        "magic_prompt": {"options": MAGIC_PROMPT_OPTIONS, "default": "AUTO"},
        "num_images": _NUM_IMAGES,
        "rendering_speed": {"options": RENDERING_SPEEDS, "default": "DEFAULT"},
        "style_preset": {"options": STYLE_PRESETS},
    },
    "upscale": {
        "resemblance": {"min": 0, "max": 100},
        "detail": {"min": 0, "max": 100},
        "magic_prompt_option": {"options": MAGIC_PROMPT_OPTIONS},
        "num_images": {"min": 1, "max": 4, "default": 1},
    },
    "describe": {
        "describe_model_version": {"options": DESCRIBE_MODEL_VERSIONS},
    },
}
