"""Tests for schema compilation and direction capabilities"""

import io
import uuid
from dataclasses import dataclass

from pytest import raises

from wirepack.generator import CapabilityMismatch, ValidationError, compile_schema, parse
from wirepack.generator.types import FieldDef, GroupDef, PacketDef, Schema, TypeRef
from wirepack.proto import Capability, Decodable, Encodable
from wirepack.proto.serialization import read_exact


class UuidCodec:
    def decode(self, source):
        return uuid.UUID(bytes=read_exact(source, 16))

    def encode(self, value, sink):
        sink.write(value.bytes)


class UuidDecoder:
    def decode(self, source):
        return uuid.UUID(bytes=read_exact(source, 16))


SESSIONS = """
extern Uuid

group Sessions {
    Login = 1 {
        session: Uuid
        previous: Uuid?
    }
}
"""


def describe_capability_checks():
    def test_write_only_struct_in_read_group(expect):
        schema = parse(
            """
            struct Secret write { value: u8 }
            group Inbound read {
                Leak = 1 { secret: Secret }
            }
            """
        )
        with raises(CapabilityMismatch) as e:
            compile_schema(schema)
        expect(e.value.node) == "Inbound.Leak"
        expect(e.value.capability) == Capability.DECODE
        expect(e.value.type_name) == "Secret"
        expect(str(e.value)) == "Inbound.Leak requires decode but Secret does not support it"

    def test_read_only_struct_in_write_group(expect):
        schema = parse(
            """
            struct Report read { value: u8 }
            group Outbound write {
                Send = 1 { report: Report }
            }
            """
        )
        with raises(CapabilityMismatch) as e:
            compile_schema(schema)
        expect(e.value.capability) == Capability.ENCODE

    def test_through_containers(expect):
        schema = parse(
            """
            struct Secret write { value: u8 }
            struct Holder { items: map<string, Secret[]>? }
            """
        )
        with raises(CapabilityMismatch) as e:
            compile_schema(schema)
        expect(e.value.node) == "Holder"
        expect(e.value.type_name) == "Secret"

    def test_read_write_packet_overriding_read_group(expect):
        schema = parse(
            """
            struct Report read { value: u8 }
            group Inbound read {
                Echo = 1 readwrite { report: Report }
            }
            """
        )
        with raises(CapabilityMismatch) as e:
            compile_schema(schema)
        expect(e.value.node) == "Inbound.Echo"
        expect(e.value.capability) == Capability.ENCODE

    def test_enum_variants(expect):
        schema = parse(
            """
            struct Report read { value: u8 }
            enum Event: u8 {
                Reported = 0 { report: Report }
            }
            """
        )
        with raises(CapabilityMismatch) as e:
            compile_schema(schema)
        expect(e.value.node) == "Event.Reported"

    def test_read_write_types_satisfy_both(expect):
        schema = parse(
            """
            struct Shared { value: u8 }
            group Inbound read { A = 1 { shared: Shared } }
            group Outbound write { B = 1 { shared: Shared } }
            """
        )
        compiled = compile_schema(schema)
        expect(sorted(compiled.groups)) == ["Inbound", "Outbound"]

    def test_is_a_validation_error():
        schema = parse("struct S write {}\nstruct T read { s: S }")
        with raises(ValidationError):
            compile_schema(schema)


def describe_generated_classes():
    def test_interfaces_follow_direction(expect):
        compiled = compile_schema(
            parse(
                """
                struct R read {}
                struct W write {}
                struct RW {}
                """
            )
        )
        expect(issubclass(compiled["R"], Decodable)) == True
        expect(issubclass(compiled["R"], Encodable)) == False
        expect(issubclass(compiled["W"], Decodable)) == False
        expect(issubclass(compiled["W"], Encodable)) == True
        expect(issubclass(compiled["RW"], Decodable)) == True
        expect(issubclass(compiled["RW"], Encodable)) == True

    def test_empty_struct(expect):
        Nothing = compile_schema(parse("struct Nothing {}"))["Nothing"]
        expect(Nothing().pack()) == b""
        expect(Nothing.unpack(b"\x01")) == (Nothing(), 0)

    def test_field_order(expect):
        Pair = compile_schema(parse("struct Pair { b: u8, a: u8 }"))["Pair"]
        expect(Pair(b=1, a=2).pack()) == b"\x01\x02"
        expect(Pair(1, 2)) == Pair(b=1, a=2)

    def test_mutually_recursive(expect):
        compiled = compile_schema(
            parse(
                """
                struct Folder { name: string, entries: Entry[] }
                enum Entry: u8 {
                    File = 0 { name: string }
                    Sub = 1 { folder: Folder }
                }
                """
            )
        )
        Folder, File, Sub = compiled["Folder"], compiled["File"], compiled["Sub"]
        tree = Folder(name="/", entries=[File(name="a"), Sub(folder=Folder(name="b", entries=[]))])
        packed = tree.pack()
        expect(packed) == b"\x01/\x02" b"\x00\x01a" b"\x01\x01b\x00"
        expect(Folder.unpack(packed)) == (tree, len(packed))

    def test_supplied_classes(expect):
        @dataclass(frozen=True)
        class Point(Decodable, Encodable):
            x: int
            y: int

            def norm(self):
                return abs(self.x) + abs(self.y)

        compiled = compile_schema(parse("struct Point { x: i8, y: i8 }"), classes={"Point": Point})
        expect(compiled["Point"] is Point) == True
        point, _ = Point.unpack(b"\xff\x02")
        expect(point.norm()) == 3

    def test_supplied_class_with_wrong_fields():
        @dataclass(frozen=True)
        class Point(Decodable, Encodable):
            x: int

        with raises(ValidationError):
            compile_schema(parse("struct Point { x: i8, y: i8 }"), classes={"Point": Point})

    def test_supplied_class_with_wrong_interfaces():
        @dataclass(frozen=True)
        class Point(Decodable, Encodable):
            x: int

        with raises(ValidationError):
            compile_schema(parse("struct Point read { x: i8 }"), classes={"Point": Point})

    def test_supplied_class_not_declared():
        @dataclass(frozen=True)
        class Point(Decodable, Encodable):
            x: int

        with raises(ValidationError):
            compile_schema(parse("struct Other { x: i8 }"), classes={"Point": Point})


def describe_externs():
    def test_manual_codec(expect):
        compiled = compile_schema(parse(SESSIONS), custom={"Uuid": UuidCodec()})
        Login = compiled["Login"]
        login = Login(session=uuid.UUID(int=1), previous=None)
        packed = login.pack()
        expect(packed) == b"\x01" + (1).to_bytes(16, "big") + b"\x00"
        expect(compiled.unpack("Sessions", packed)) == (login, 18)

    def test_decode_only_codec_in_read_write_group(expect):
        with raises(CapabilityMismatch) as e:
            compile_schema(parse(SESSIONS), custom={"Uuid": UuidDecoder()})
        expect(e.value.capability) == Capability.ENCODE
        expect(e.value.type_name) == "Uuid"

    def test_decode_only_codec_in_read_group(expect):
        text = SESSIONS.replace("group Sessions {", "group Sessions read {")
        compiled = compile_schema(parse(text), custom={"Uuid": UuidDecoder()})
        packet = compiled.decode("Sessions", io.BytesIO(b"\x01" + bytes(16) + b"\x00"))
        expect(packet.session) == uuid.UUID(int=0)

    def test_missing_codec():
        with raises(ValidationError):
            compile_schema(parse(SESSIONS))

    def test_undeclared_codec():
        with raises(ValidationError):
            compile_schema(parse("struct A {}"), custom={"Uuid": UuidCodec()})

    def test_codec_without_methods():
        with raises(ValidationError):
            compile_schema(parse(SESSIONS), custom={"Uuid": object()})


def describe_validation():
    def test_duplicate_packet_ids(expect):
        schema = Schema(
            groups=[
                GroupDef(
                    name="G",
                    packets=[
                        PacketDef(name="A", id=1, fields=[]),
                        PacketDef(name="B", id=1, fields=[]),
                    ],
                )
            ]
        )
        with raises(ValidationError) as e:
            compile_schema(schema)
        expect("share packet ID 1" in str(e.value)) == True

    def test_unknown_field_type():
        schema = Schema(
            groups=[
                GroupDef(
                    name="G",
                    packets=[
                        PacketDef(
                            name="A", id=1, fields=[FieldDef(name="x", type=TypeRef(name="Nope"))]
                        )
                    ],
                )
            ]
        )
        with raises(ValidationError):
            compile_schema(schema)

    def test_packet_id_zero_allowed(expect):
        compiled = compile_schema(parse("group G { Ping = 0 {} }"))
        expect(compiled["Ping"]().pack()) == b"\x00"
