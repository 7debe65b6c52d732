"""Example usage of the columnar_rows library."""

from decimal import Decimal

from columnar_rows import (
    ChunkedTable,
    RecordBatch,
    Schema,
    array,
    dictionary_encode,
    parse_data_type,
)

# Describe the columns with data type strings
schema = Schema.from_pairs(
    [
        ("language", parse_data_type("dictionary<int32, utf8>")),
        ("released", parse_data_type("date32")),
        ("price", parse_data_type("decimal128(8, 2)")),
    ]
)

# Build two batches of the same schema
first = RecordBatch(
    schema,
    [
        dictionary_encode(array(["Ruby", "Python", "Ruby"], parse_data_type("utf8"))),
        array([None, None, None], parse_data_type("date32")),
        array([Decimal("92.92"), None, Decimal("29.29")], parse_data_type("decimal128(8, 2)")),
    ],
)
second = RecordBatch(
    schema,
    [
        array(["あ", None], schema.field("language").data_type),
        array([None, None], parse_data_type("date32")),
        array(["1.50", "0.01"], parse_data_type("decimal128(8, 2)")),
    ],
)

# Present them as one table and walk its rows lazily
table = ChunkedTable(schema, [first, second])
for row in table.each_raw_record():
    print(row)

# Random access goes through the batch lookup
print("Row 3 lives in batch/row", table.locate(3))
print(table.raw_record(3))
