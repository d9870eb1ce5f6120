"""Schema generation."""

from strata.schema.generator import SchemaGenerator, SchemaOptions, SchemaPlan

__all__ = ["SchemaGenerator", "SchemaOptions", "SchemaPlan"]
