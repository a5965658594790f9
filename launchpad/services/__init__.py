"""
Service modules for the campaign launch workflow.

This package contains the review gate, the multi-channel launch orchestrator,
post-launch lifecycle actions, and the collaborators they depend on
(owner profiles, notifications).
"""
