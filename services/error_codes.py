"""
Standard error codes for service layer.

These codes let the API layer map failures to HTTP statuses without
parsing error message text.

Usage:
    from services.error_codes import ROUND_NOT_ACTIVE
    from services.result import Result

    return Result.fail("Round is not active", code=ROUND_NOT_ACTIVE)
"""

# General errors
NOT_FOUND = "not_found"
VALIDATION_ERROR = "validation_error"
STATE_ERROR = "state_error"
EXTERNAL_API_ERROR = "external_api_error"

# Player errors
PLAYER_NOT_FOUND = "player_not_found"
INSUFFICIENT_FUNDS = "insufficient_funds"
WELFARE_NOT_ELIGIBLE = "welfare_not_eligible"
WELFARE_COOLDOWN = "welfare_cooldown"

# Round errors
ROUND_NOT_FOUND = "round_not_found"
ROUND_NOT_ACTIVE = "round_not_active"
ACTIVE_ROUND_EXISTS = "active_round_exists"
MAX_ACTIVE_ROUNDS = "max_active_rounds"
POST_RECENTLY_USED = "post_recently_used"
NO_ELIGIBLE_POSTS = "no_eligible_posts"

# Wager errors
DUPLICATE_WAGER = "duplicate_wager"
INVALID_SIDE = "invalid_side"
INVALID_PREDICTION = "invalid_prediction"
WAGER_TOO_SMALL = "wager_too_small"

# Market errors
STOCK_NOT_FOUND = "stock_not_found"
STOCK_INACTIVE = "stock_inactive"
INSUFFICIENT_CHIPS_FOR_ONE_SHARE = "insufficient_chips_for_one_share"
POSITION_NOT_FOUND = "position_not_found"
INSUFFICIENT_SHARES = "insufficient_shares"
