"""core/ -- Kernel package: configuration. Imports nothing from auth/ or api/."""
