"""
Kernel layer.

Pure, integer-only math with explicit rounding rules, shared by the vault core
and the in-memory venues:
- `src/kernels/python/share_math.py`: asset <-> share conversions.
- `src/kernels/python/pair_math.py`: constant-product swap and liquidity math.
- `src/kernels/python/reward_math.py`: accumulated-reward-per-share accrual.
"""
