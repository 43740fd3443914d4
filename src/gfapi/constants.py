"""Marketplace constants: categories, status values, Steam ids."""

from types import SimpleNamespace

from .core.config import DEFAULT_BASE_URLS

# Listings must use the category matching the marketplace terms of service.
# Physical items can only be bought and shipped within the continental US.
CATEGORY = SimpleNamespace(
    GAMES="CONSOLE_VIDEO_GAMES",        # Video games, digital or physical
    INGAME="DIGITAL_INGAME",            # In-game items, digital only
    GIFTCARD="GIFTCARD",                # Gift cards, digital or physical
    CONSOLE="VIDEO_GAME_HARDWARE",      # Console hardware, physical only
    ACCESSORIES="VIDEO_GAME_ACCESSORIES",  # Console accessories, physical only
    TOYS="TOYS_AND_GAMES",              # Collectibles, physical only
    VIDEO="VIDEO_DVD",                  # Movies, physical or digital
    OTHER="UNKNOWN",                    # Unsupported
)

ESCROW_STATUS = SimpleNamespace(
    START="start",                      # Seller has the Steam item(s)
    RECEIVE_PENDING="receive_pending",  # Offer made to seller to get the item(s)
    RECEIVED="received",                # Marketplace bot has the item(s)
    LISTED="listed",                    # Listings created for the item(s)
    STEAM_ESCROW="steam_escrow",        # Held by Steam in escrow
    TRADE_HOLD="trade_hold",            # Item(s) received but under trade hold
    DELIVER_PENDING="deliver_pending",  # Offer made to buyer, not accepted yet
    DELIVERED="delivered",              # Buyer has the item (terminal)
    RETURN_PENDING="return_pending",    # Return offer made to seller
    RETURNED="returned",                # Seller accepted the return
)

LISTING_STATUS = SimpleNamespace(
    DRAFT="draft",                # Editing, cannot be listed
    READY="ready",                # Required fields filled in
    ONSALE="onsale",              # Public
    SALE_PENDING="sale_pending",  # Bought, payment processing
    SOLD="sold",
)

BASE_URL = dict(DEFAULT_BASE_URLS)

STEAM_APP_ID = SimpleNamespace(
    CSGO="730",
    TF2="440",
    DOTA2="570",
    RUST="252490",
    PUBG="578080",
    H1Z1_KOK="433850",
    JUST_SURVIVE="295110",
)

STEAM_CONTEXT_ID = {
    STEAM_APP_ID.H1Z1_KOK: "1",
    STEAM_APP_ID.JUST_SURVIVE: "1",
}
STEAM_DEFAULT_CONTEXT_ID = "2"


def steam_context_id(app_id: str) -> str:
    return STEAM_CONTEXT_ID.get(str(app_id), STEAM_DEFAULT_CONTEXT_ID)
