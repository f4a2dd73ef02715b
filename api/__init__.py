"""api/ -- FastAPI HTTP surface for Whendy. Imports from auth/ and core/."""
