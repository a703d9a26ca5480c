"""Application-wide constants.

These are fixed values that don't change between environments.
For configurable values, see config.py Settings and analysis.models.AnalysisConfig.
"""

# ─────────────────────────────────────────────────────────────
# Message Limits (platform constraints)
# ─────────────────────────────────────────────────────────────
TELEGRAM_MAX_MESSAGE_LENGTH = 4096  # Telegram API limit

# ─────────────────────────────────────────────────────────────
# Put/Call Ratio thresholds (bullish_below, bearish_above)
# ─────────────────────────────────────────────────────────────
PCR_OI_THRESHOLDS = (0.7, 1.0)  # open interest, whole chain and ATM band
PCR_VOLUME_THRESHOLDS = (0.8, 1.2)  # traded volume, whole-system scoring
VOLUME_SIGNAL_THRESHOLDS = (0.7, 1.2)  # volume analyzer signal
PCR_SCORE_STRONG_THRESHOLDS = (0.6, 1.2)  # confidence scorer, +/-10
PCR_SCORE_MILD_THRESHOLDS = (0.8, 1.0)  # confidence scorer, +/-5

# ─────────────────────────────────────────────────────────────
# Band widths (percent of current price)
# ─────────────────────────────────────────────────────────────
ATM_PCR_RANGE_PERCENT = 5.0
ATM_BUILDUP_RANGE_PERCENT = 3.0
ATM_VOLUME_RANGE_PERCENT = 2.0
MAX_PAIN_TOLERANCE_PERCENT = 1.0
SIGNIFICANT_OI_CHANGE_PERCENT = 10.0

# ─────────────────────────────────────────────────────────────
# Signal vote weights
# ─────────────────────────────────────────────────────────────
WEIGHT_PCR = 2.0
WEIGHT_ATM_PCR = 2.0
WEIGHT_MAX_PAIN = 1.5
WEIGHT_OI_TREND = 2.0
WEIGHT_ATM_BUILDUP = 1.5

# Net score cutoffs: |net| >= value -> strength
STRENGTH_CUTOFFS = ((4.0, 5), (2.5, 4), (1.0, 3))
NEUTRAL_ACTIVITY_THRESHOLD = 3.0

# ─────────────────────────────────────────────────────────────
# Confidence factor scoring (base 50)
# ─────────────────────────────────────────────────────────────
CONFIDENCE_BASE = 50
WALL_PROXIMITY_PERCENT = 20.0
MAX_PAIN_CONFIDENCE_PERCENT = 2.0
VOLUME_SPIKE_MULTIPLIER = 2.0
KEY_LEVEL_COUNT = 3

# ─────────────────────────────────────────────────────────────
# Gamma exposure
# ─────────────────────────────────────────────────────────────
RISK_FREE_RATE = 0.05
DEFAULT_IV = 0.15
DEFAULT_DAYS_TO_EXPIRY = 30
MIN_TIME_TO_EXPIRY_YEARS = 0.001
CONTRACT_MULTIPLIER = 100
ZERO_GAMMA_WINDOW = 0.10
ZERO_GAMMA_STEPS = 20
ZERO_GAMMA_MAX_ITERATIONS = 100

# ─────────────────────────────────────────────────────────────
# AI consensus
# ─────────────────────────────────────────────────────────────
DEFAULT_MIN_PROVIDERS = 2
MAX_CONSENSUS_WARNINGS = 5
CONSENSUS_PROVIDER_NAME = "consensus"

# ─────────────────────────────────────────────────────────────
# Prediction accuracy
# ─────────────────────────────────────────────────────────────
INTRADAY_EXPIRY_HOURS = 24
SWING_EXPIRY_HOURS = 72
CONSENSUS_EXPIRY_HOURS = 48
MIN_SAMPLES_FOR_RECOMMENDATION = 10

# ─────────────────────────────────────────────────────────────
# Technical indicators (hourly candles built from snapshot prices)
# ─────────────────────────────────────────────────────────────
CANDLE_INTERVAL_MINUTES = 60
RSI_PERIOD = 14
RSI_OVERBOUGHT = 70.0
RSI_OVERSOLD = 30.0
ATR_PERIOD = 14
VOLATILITY_HIGH_PERCENT = 1.5  # ATR as percent of price
VOLATILITY_MEDIUM_PERCENT = 0.8
ATR_STOP_MULTIPLIERS = (1.5, 2.0, 3.0)  # stop-loss, TP1, TP2 distances
SWING_LEVEL_COUNT = 3
FALLBACK_LEVEL_STEP = 15.0

# ─────────────────────────────────────────────────────────────
# Historical context
# ─────────────────────────────────────────────────────────────
HISTORY_DAYS = 30
HISTORY_MAX_POINTS = 240
RECENT_SIGNAL_DAYS = 7
RECENT_SIGNAL_LIMIT = 10
SIMILAR_PCR_TOLERANCE = 0.2
SIMILAR_LOOKAHEAD_HOURS = 24
SIMILAR_SIDEWAYS_BAND = 5.0  # average move in dollars still read as sideways

# ─────────────────────────────────────────────────────────────
# XAU spot conversion
# ─────────────────────────────────────────────────────────────
SPREAD_NORMAL_RANGE = (10.0, 25.0)  # CME futures premium over spot, dollars
BUY_ZONE_OFFSETS = (-5.0, 10.0)  # around the put wall
SELL_ZONE_OFFSETS = (-10.0, 5.0)  # around the call wall

# ─────────────────────────────────────────────────────────────
# Economic calendar
# ─────────────────────────────────────────────────────────────
CALENDAR_NO_TRADE_HOURS = 2
CALENDAR_CAUTION_HOURS = 6
CALENDAR_WEEK_MEDIUM_CAUTION = 2  # more high-impact events than this in a week

# ─────────────────────────────────────────────────────────────
# Storage
# ─────────────────────────────────────────────────────────────
MAX_SNAPSHOTS_PER_PRODUCT = 3000  # about 30 days at one snapshot per 15 minutes

# ─────────────────────────────────────────────────────────────
# Pub/Sub channels
# ─────────────────────────────────────────────────────────────
SIGNAL_CHANNEL = "aurum:signals"
CONSENSUS_CHANNEL = "aurum:consensus"
