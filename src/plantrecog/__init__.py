"""PlantRecog: photograph a plant, get ranked species predictions."""

__version__ = "0.1.0"
