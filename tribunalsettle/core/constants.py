"""
tribunalsettle/core/constants.py

Protocol constants shared by the settlement model and the decoders.

Every value here mirrors a constant compiled into the on-chain program.
Changing one silently breaks bit-for-bit agreement with resolved rounds.
"""

# ── Integer widths ────────────────────────────────────────────────────────────

U64_MAX  = (1 << 64) - 1
U128_MAX = (1 << 128) - 1

# ── Units ─────────────────────────────────────────────────────────────────────

LAMPORTS_PER_SOL = 1_000_000_000
MAX_BPS          = 10_000
WEIGHT_PRECISION = 1_000_000_000

# ── Reputation (6 decimal places of percentage) ───────────────────────────────

REP_PRECISION          = 1_000_000
ONE_HUNDRED_PERCENT    = 100_000_000
INITIAL_REPUTATION     = 50_000_000
REPUTATION_GAIN_RATE   = 1_000_000
REPUTATION_LOSS_RATE   = 2_000_000
SLASH_THRESHOLD        = 50_000_000
MIN_SIGMOID_MULTIPLIER = 20_000_000

# sqrt(0.5) scaled so that base * 7071 // isqrt(50%) == base.
SQRT_HALF_SCALED  = 7_071
# Same floor as the on-chain minimum bond: base_bond * 7 / 10.
MIN_BOND_FLOOR_NUM = 7
MIN_BOND_FLOOR_DEN = 10
MAX_BOND_MULTIPLE  = 10

# ── Fees ──────────────────────────────────────────────────────────────────────

TOTAL_FEE_BPS      = 2_000   # 20% of the pool on a normal resolution
JUROR_SHARE_BPS    = 9_500   # of fees
PLATFORM_SHARE_BPS = 500     # of fees; also the NoParticipation fee on the pool
WINNER_SHARE_BPS   = 8_000
BOT_REWARD_BPS     = 100

# ── Stakes and periods (seconds) ──────────────────────────────────────────────

BASE_CHALLENGER_BOND  = 10_000_000
STAKE_UNLOCK_BUFFER   = 7 * 24 * 60 * 60
CLAIM_GRACE_PERIOD    = 30 * 24 * 60 * 60
TREASURY_SWEEP_PERIOD = 90 * 24 * 60 * 60

# ── Program addresses ─────────────────────────────────────────────────────────

ROUND_PROGRAM_ID   = "YxF3CEwUr5Nhk8FjzZDhKFcSHfgRHYA31Ccm3vd2Mrz"
DISPUTE_PROGRAM_ID = "9oS7XD7b14j8BjHuzytiiK8iEYVzd1MtVdfUhrJVsM5j"

DISCRIMINATOR_SIZE = 8
PUBKEY_SIZE        = 32
