"""
Recipe catalog engine.

Responsibilities:
- Fetch category listings from MealDB / CocktailDB and merge them by id.
- Derive deterministic calorie, diet, popularity and ordering attributes.
- Hold one read-only in-memory snapshot per collection, warmed exactly once.
- Serve search, browse, suggestions and nutrition from that snapshot.
"""
