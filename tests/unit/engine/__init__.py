"""
Engine tests: normalizer, strategy chain, resolver and readiness gate.
"""
