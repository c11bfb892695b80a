import pathlib

# Path constants
ASSETS_PATH = pathlib.Path("assets")
OUTPUT_PATH = pathlib.Path("output")

# Tier roots under the asset store
TIER_DIRECTORIES = {
    "legendary": "legendary",
    "common": "common",
}

CHARACTERS = ("bear", "bunny", "fox", "chogstar")
RARITIES = ("legendary", "common")

IMAGE_EXTENSIONS = (".png",)
NONE_VALUE = "none"

# Canvas sizes (pixels, square)
IMAGE_SIZE = 2048
PREVIEW_SIZE = 512
THUMBNAIL_SIZE = 512

DEFAULT_SEED = 42
BATCH_SIZE = 50
MAX_ATTEMPTS_MULTIPLIER = 50

COLLECTION_CONFIG = {
    "legendary": {"count": 240},
    "common": {"count": 5735, "legendary_inherit_percentage": 1},
}

# Layer order for compositing (bottom to top)
LAYER_ORDER_LEGENDARY = (
    "background",
    "base",
    "clothes",
    "eyes",
    "hand",
    "hand_accessories",
    "side_hand_accessories",
    "side_hand",
)

LAYER_ORDER_COMMON = (
    "background",
    "base",
    "shirt",
    "necklaces",
    "mouth",
    "eyes",
    "eyeglasses",
    "head_acc",
    "hand",
    "hand_accessories",
    "side_hand_accessories",
    "side_hand",
)

LAYER_ORDER = {
    "legendary": LAYER_ORDER_LEGENDARY,
    "common": LAYER_ORDER_COMMON,
}

# Chance of having an optional trait (0-100), keys are the optional layers
OPTIONAL_TRAIT_CHANCE = {
    "legendary": {
        "clothes": 80,
        "hand": 90,
        "side_hand": 90,
        "hand_accessories": 70,
        "side_hand_accessories": 70,
    },
    "common": {
        "shirt": 85,
        "necklaces": 40,
        "head_acc": 60,
        "eyeglasses": 30,
        "hand_accessories": 50,
        "side_hand_accessories": 40,
    },
}
DEFAULT_OPTIONAL_CHANCE = 50

# Only one accessory family per NFT. Each mode keeps these layers and
# suppresses the rest of HAND_ACCESSORY_LAYERS.
HAND_ACCESSORY_LAYERS = (
    "hand",
    "hand_accessories",
    "side_hand",
    "side_hand_accessories",
    "accessories",
)
ACCESSORY_MODES = {
    "right": ("hand", "hand_accessories"),
    "left": ("side_hand", "side_hand_accessories"),
    "no_hand": ("accessories",),
}
# Optional-chance key deciding whether the mode's accessory shows at all
ACCESSORY_MODE_CHANCE_KEY = {
    "right": "hand_accessories",
    "left": "side_hand_accessories",
    "no_hand": "accessories",
}

# Legendary traits that common NFTs may inherit. base/hand/side_hand stay
# common so they match the base colour; golden hand accessories don't fit
# common hands.
LEGENDARY_INHERITABLE_TRAITS = (
    "background",
    "clothes",
    "eyes",
    "side_hand_accessories",
)

# Common layer name -> legendary layer name
LEGENDARY_LAYER_ALIASES = {
    "shirt": "clothes",
}

# All legendary clothes are full costumes and block head_acc and necklaces
LEGENDARY_CLOTHES_BLOCKS_HEAD_ACC = True

# Common shirts that are hoodies (block head_acc and necklaces)
COMMON_HOODIES = frozenset(
    [
        # bear/bunny/fox
        "beige_hoodie",
        "black_hoodie",
        "chogstar_hoodie",
        "purple_hoodie",
        "stripes_hoodie",
        "white_hoodie",
        # chogstar
        "gray__orange_striped_hoodie",
        "gray_hoodie",
    ]
)

# Astronaut suits block head_acc, necklaces, eyeglasses and legendary eyes
COMMON_ASTRONAUT = frozenset(["astronaut"])

# Masks and scarves covering the face: no eyeglasses, no legendary eyes
HEAD_ACC_BLOCKS_EYEGLASSES = frozenset(
    [
        "scarf",
        "black_mask_w_black_hair",
        "black_mask_with_hair",
        "black_mask",
        "blue_mask",
        "fur_mask",
        "gojo_mask",
        "pink_scarf",
        "red_mask",
        "washed_mask",
        "yapper_mask",
    ]
)

# Legendary base -> matching hand styles
LEGENDARY_BASE_HAND_PAIRING = {
    # illuminate bases use golden/flame hands
    "illuminate_bear": {"hand": "golden_hands", "side_hand": "hand_flame"},
    "illuminate_bunny": {"hand": "golden_hands", "side_hand": "hand_flame"},
    "illuminate_fox": {"hand": "golden_hands", "side_hand": "hand_flame"},
    "illuminate_chogstars": {"hand": "golden_hands", "side_hand": "hand_flame"},
    # translucent bases use lunar/spirit hands
    "bear_translucent": {"hand": "lunar_hand", "side_hand": "hand_spirit"},
    "bunny_translucent": {"hand": "lunar_hand", "side_hand": "hand_spirit"},
    "fox_translucent": {"hand": "lunar_hand", "side_hand": "hand_spirit"},
    "chogstars_translucent": {"hand": "lunar_hand", "side_hand": "hand_spirit"},
}

# Common base colour -> matching hand colours, per character
COLOR_MATCHING_COMMON = {
    "bear": {
        "brown": {"hand": "chocolate_brown", "side_hand": "chocolate_brown"},
        "gray": {"hand": "medium_grey", "side_hand": "medium_grey"},
        "grey_and_black": {"hand": "light_mint_grey", "side_hand": "light_mint_grey"},
        "mustard": {"hand": "mustard_yellow", "side_hand": "mustard_yellow"},
        "purple": {"hand": "pale_lavender", "side_hand": "pale_lavender"},
        "white_and_dark_gray": {"hand": "off-white", "side_hand": "off-white"},
    },
    "bunny": {
        "black": {"hand": "black", "side_hand": "black"},
        "blue": {"hand": "deep_blue", "side_hand": "deep_blue"},
        "dark_brown": {"hand": "dark_brown", "side_hand": "dark_brown"},
        "devil_bunny": {"hand": "devil_bunny_hand", "side_hand": "pink"},
        "light_brown": {"hand": "brown", "side_hand": "brown"},
        "mustard": {"hand": "mustard_yellow", "side_hand": "mustard_yellow"},
        "pink": {"hand": "mauve_pink", "side_hand": "mauve_pink"},
        "sage": {"hand": "sage_green", "side_hand": "sage_green"},
        "white": {"hand": "light_grey", "side_hand": "light_grey"},
    },
    "fox": {
        "fox_black": {"hand": "fox_black", "side_hand": "fox_black"},
        "fox_mixed": {"hand": "fox_white", "side_hand": "fox_white"},
        "fox_orange": {"hand": "peach", "side_hand": "peach"},
        "fox_white": {"hand": "fox_white", "side_hand": "fox_white"},
    },
    "chogstar": {
        "black": {"hand": "black", "side_hand": "black"},
        "brown_1": {"hand": "cocoa_brown", "side_hand": "cocoa_brown"},
        "brown_2": {"hand": "brown", "side_hand": "brown"},
        "dark": {"hand": "deep_navy_blue", "side_hand": "deep_navy_blue"},
        "nude": {"hand": "soft_beige", "side_hand": "soft_beige"},
        "orange": {"hand": "amber", "side_hand": "amber"},
        "pink": {"hand": "pink", "side_hand": "pink"},
        "pitch_black": {"hand": "deep_black", "side_hand": "deep_black"},
        "purple": {"hand": "purple", "side_hand": "purple"},
        "smoke": {"hand": "charcoal_black", "side_hand": "charcoal_black"},
        "white": {"hand": "pure_white", "side_hand": "pure_white"},
    },
}

# Trait folders: shared per tier, and per character (takes precedence)
SHARED_TRAITS = {
    "legendary": {
        "background": "background",
        "clothes": "clothes",
        "eyes": "eyes",
        "hand": "hand_spirit",
        "side_hand": "side_hand",
        "hand_accessories": "hand_accessories_gold",
        "side_hand_accessories": "side_hand_accessories_gold",
    },
    "common": {
        "background": "background",
        "eyes": "eyes",
        "eyeglasses": "eyeglasses",
        "mouth": "mouth",
        "hand_accessories": "hand_accessories",
        "side_hand_accessories": "side_hand_accessories",
        "necklaces": "necklaces",
    },
}

CHARACTER_TRAITS = {
    "legendary": {
        character: {"base": "base_spirit"} for character in CHARACTERS
    },
    "common": {
        "bear": {
            "base": "base_bear",
            "hand": "hand_bear",
            "side_hand": "side_hand_bear",
            "shirt": "shirt_bear_bunny_fox",
            "head_acc": "head_acc_bear_bunny_fox",
        },
        "bunny": {
            "base": "base_bunny",
            "hand": "hand_bunny",
            "side_hand": "side_hand_bunny",
            "shirt": "shirt_bear_bunny_fox",
            "head_acc": "head_acc_bear_bunny_fox",
        },
        "fox": {
            "base": "base_fox",
            "hand": "hand_fox",
            "side_hand": "side_hand_fox",
            "shirt": "shirt_bear_bunny_fox",
            "head_acc": "head_acc_bear_bunny_fox",
        },
        "chogstar": {
            "base": "base_chogstar",
            "hand": "hand_chogstar",
            "side_hand": "side_hand_chogstar",
            "shirt": "shirt_chogstar",
            "head_acc": "head_acc_chogstar",
        },
    },
}

# The legendary base folder is shared; each character loads only its own
LEGENDARY_BASE_FILES = {
    "bear": ("bear_translucent", "illuminate_bear"),
    "bunny": ("bunny_translucent", "illuminate_bunny"),
    "fox": ("fox_translucent", "illuminate_fox"),
    "chogstar": ("chogstars_translucent", "illuminate_chogstars"),
}

# Layer position offsets in pixels for the IMAGE_SIZE canvas.
# Positive values move down/right, negative values move up/left.
LAYER_OFFSETS = {
    "side_hand": {"top": 0, "left": 0},
}

# Metadata display names
LAYER_DISPLAY_NAMES = {
    "background": "Background",
    "base": "Base",
    "shirt": "Shirt",
    "clothes": "Clothes",
    "side_hand": "Side Hand",
    "side_hand_accessories": "Hand Accessories",
    "necklaces": "Necklace",
    "mouth": "Mouth",
    "eyes": "Eyes",
    "eyeglasses": "Eyeglasses",
    "head_acc": "Head Accessory",
    "hand": "Hand",
    "hand_accessories": "Hand Accessories",
    "accessories": "Hand Accessories",
}

CHARACTER_DISPLAY_NAMES = {
    "bear": "Bear",
    "bunny": "Bunny",
    "fox": "Fox",
    "chogstar": "Chogstar",
}
