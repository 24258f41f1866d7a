from dataclasses import dataclass

_PER_MILLION = 1_000_000


@dataclass(frozen=True, slots=True)
class ModelPrice:
    """
    ModelPrice holds USD prices per million tokens for
    each billed token category.
    """

    input: "float"
    output: "float"
    cache_write: "float"
    cache_read: "float"


ZERO_PRICE = ModelPrice(input=0.0, output=0.0, cache_write=0.0, cache_read=0.0)

OPUS_4 = ModelPrice(input=15.0, output=75.0, cache_write=18.75, cache_read=1.50)
SONNET_4 = ModelPrice(input=3.0, output=15.0, cache_write=3.75, cache_read=0.30)
SONNET_37 = ModelPrice(input=3.0, output=15.0, cache_write=3.75, cache_read=0.30)
SONNET_35 = ModelPrice(input=3.0, output=15.0, cache_write=3.75, cache_read=0.30)
HAIKU_35 = ModelPrice(input=0.80, output=4.0, cache_write=1.0, cache_read=0.08)

# most specific family first; first match wins.
# each tuple is (substring_patterns, price)
PRICE_TABLE: "list[tuple[tuple[str, ...], ModelPrice]]" = [
    (("opus-4", "claude-opus-4"), OPUS_4),
    (("sonnet-4", "claude-sonnet-4"), SONNET_4),
    (("sonnet-3.7", "claude-sonnet-3.7"), SONNET_37),
    (("sonnet-3.5", "claude-sonnet-3.5"), SONNET_35),
    (("haiku-3.5", "claude-haiku-3.5"), HAIKU_35),
]


def lookup_price(model: "str") -> "ModelPrice":
    """
    returns the price of the first family whose pattern is a
    (case-sensitive) substring of the model name. Unknown models
    price at zero rather than being guessed.
    """
    for patterns, price in PRICE_TABLE:
        if any(p in model for p in patterns):
            return price

    return ZERO_PRICE


def calculate_cost(
    model: "str",
    input_tokens: "int",
    output_tokens: "int",
    cache_creation_tokens: "int",
    cache_read_tokens: "int",
) -> "float":
    price = lookup_price(model)
    return (
        input_tokens * price.input / _PER_MILLION
        + output_tokens * price.output / _PER_MILLION
        + cache_creation_tokens * price.cache_write / _PER_MILLION
        + cache_read_tokens * price.cache_read / _PER_MILLION
    )
