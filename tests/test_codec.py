from dataclasses import dataclass, replace

import pytest
from bson import ObjectId

from docschema import PK, DecodeError, Schema, TypeMismatchError
from docschema.base.codec import decode_document, encode_entity
from tests.models import A_LOVE_SUPREME, GIANT_STEPS, Album, Details, Pricing, Shipping


class TestEncoding:
    def test_nested_groups_become_sub_documents(self, albums):
        document = encode_entity(albums, replace(A_LOVE_SUPREME, id="fixed"))
        assert document == {
            "_id": "fixed",
            "sku": "00e8da9b",
            "title": "A Love Supreme",
            "description": "by John Coltrane",
            "asin": "B0000A118M",
            "shipping": {"weight": 6, "dimensions": {"width": 10, "height": 10, "depth": 1}},
            "pricing": {"list": 1200, "retail": 1100, "savings": 100, "pct_savings": 8},
            "details": {
                "title": "A Love Supreme [Original Recording Reissued]",
                "artist": "John Coltrane",
            },
        }

    def test_missing_string_key_is_generated(self, albums):
        document = encode_entity(albums, A_LOVE_SUPREME)
        assert ObjectId.is_valid(document["_id"])

    def test_optional_group_is_omitted(self, albums):
        document = encode_entity(albums, GIANT_STEPS)
        assert document["shipping"] == {"weight": 5}

    def test_missing_required_value(self, albums):
        entity = replace(A_LOVE_SUPREME, asin=None)
        with pytest.raises(TypeMismatchError) as info:
            encode_entity(albums, entity)
        assert info.value.path == "asin"

    def test_wrong_value_type_in_group(self, albums):
        entity = replace(A_LOVE_SUPREME, pricing=Pricing(list="1200", retail=1, savings=1, pct_savings=1))
        with pytest.raises(TypeMismatchError) as info:
            encode_entity(albums, entity)
        assert info.value.path == "pricing.list"

    def test_wrong_entity_type(self, albums):
        with pytest.raises(TypeMismatchError):
            encode_entity(albums, Details(title="x", artist="y"))

    def test_wrong_group_entity_type(self, albums):
        entity = replace(A_LOVE_SUPREME, shipping=Details(title="x", artist="y"))
        with pytest.raises(TypeMismatchError) as info:
            encode_entity(albums, entity)
        assert info.value.path == "shipping"

    def test_mapping_entity(self):
        with Schema("notes") as notes:
            notes.string("text")
            meta = notes.group("meta")
            meta.integer("version")
        document = encode_entity(notes, {"id": "n1", "text": "hello", "meta": {"version": 2}})
        assert document == {"_id": "n1", "text": "hello", "meta": {"version": 2}}

    def test_attribute_differs_from_document_name(self):
        @dataclass
        class Counter:
            label: str
            number: int | None = None

        with Schema("counters", Counter, primary_key=PK.integer("_id", attribute="number")) as counters:
            counters.string("name", attribute="label")
        assert encode_entity(counters, Counter(label="hits", number=3)) == {"_id": 3, "name": "hits"}

    def test_integer_key_must_be_supplied(self):
        with Schema("counters", primary_key=PK.integer()) as counters:
            counters.string("name")
        with pytest.raises(TypeMismatchError):
            encode_entity(counters, {"name": "hits"})


class TestDecoding:
    def test_rebuilds_nested_entities(self, albums):
        document = encode_entity(albums, replace(A_LOVE_SUPREME, id="fixed"))
        assert decode_document(albums, document) == replace(A_LOVE_SUPREME, id="fixed")

    def test_object_id_key_is_decoded_as_text(self, albums):
        key = ObjectId()
        document = encode_entity(albums, GIANT_STEPS)
        document["_id"] = key
        assert decode_document(albums, document).id == str(key)

    def test_without_entity_type_returns_dicts(self):
        with Schema("notes") as notes:
            notes.string("text")
            meta = notes.group("meta")
            meta.integer("version")
        decoded = decode_document(notes, {"_id": "n1", "text": "hi", "meta": {"version": 1}})
        assert decoded == {"id": "n1", "text": "hi", "meta": {"version": 1}}

    def test_unknown_keys_are_ignored(self, albums):
        document = encode_entity(albums, replace(GIANT_STEPS, id="g"))
        document["rating"] = 5
        assert decode_document(albums, document) == replace(GIANT_STEPS, id="g")

    def test_entity_without_key_attribute(self):
        @dataclass
        class Note:
            text: str

        with Schema("notes", Note) as notes:
            notes.string("text")
        assert decode_document(notes, {"_id": "n1", "text": "hi"}) == Note(text="hi")

    def test_stored_type_mismatch(self, albums):
        document = encode_entity(albums, replace(GIANT_STEPS, id="g"))
        document["pricing"]["list"] = "a lot"
        with pytest.raises(DecodeError):
            decode_document(albums, document)

    def test_missing_required_attribute(self, albums):
        document = encode_entity(albums, replace(GIANT_STEPS, id="g"))
        del document["sku"]
        with pytest.raises(DecodeError):
            decode_document(albums, document)

    def test_group_that_is_not_a_document(self, albums):
        document = encode_entity(albums, replace(GIANT_STEPS, id="g"))
        document["shipping"] = 5
        with pytest.raises(DecodeError):
            decode_document(albums, document)

    def test_optional_group_left_to_default(self, albums):
        decoded = decode_document(albums, encode_entity(albums, replace(GIANT_STEPS, id="g")))
        assert decoded.shipping == Shipping(weight=5)
