"""
accountguard - account security and session issuance for the LearnHub platform.
"""
__version__ = "0.1.0"
