"""Contract envelopes and the public e-signature flow"""
