"""Core data models and content schemas shared by the engine and exercises."""
