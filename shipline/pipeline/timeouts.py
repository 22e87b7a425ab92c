from __future__ import annotations

# GH / API operations
GH_TIMEOUT_SECONDS = 60.0
GH_UPLOAD_TIMEOUT_SECONDS = 15 * 60.0

# Idempotent GH read retry policy
GH_READ_RETRY_ATTEMPTS = 3
GH_READ_RETRY_DELAY_SECONDS = 1.0

# Validation commands (fmt, lint, test)
VALIDATION_TIMEOUT_SECONDS = 30 * 60.0

# One matrix cell (cargo build --release)
BUILD_TIMEOUT_SECONDS = 60 * 60.0

# nix-prefetch-git downloads the tagged source
NIX_PREFETCH_TIMEOUT_SECONDS = 10 * 60.0
