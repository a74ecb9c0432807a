from . import little_lemon

LOADERS = {
    "little_lemon": little_lemon.load_menu,
}
