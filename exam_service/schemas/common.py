# exam_service/schemas/common.py
from pydantic import AliasGenerator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class InputModel(BaseModel):
    """Accepts camelCase or snake_case keys, always dumps snake_case."""

    model_config = ConfigDict(
        alias_generator=AliasGenerator(validation_alias=to_camel),
        populate_by_name=True,
        coerce_numbers_to_str=True,
        from_attributes=True,
    )
