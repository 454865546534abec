"""
Service layer: orchestration between the store, prompts and the provider.
"""
