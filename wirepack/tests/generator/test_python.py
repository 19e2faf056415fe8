"""Tests for the generated Python module"""

import os

from pytest import raises

from wirepack.generator import parse
from wirepack.generator.python import render
from wirepack.proto import Decodable, Encodable, UnknownPacketIdentifier

FILE_DIR = os.path.dirname(os.path.realpath(__file__))
PACKETS_SCHEMA = os.path.join(FILE_DIR, "..", "proto", "packets.wire")


def gen_code(text):
    gbl = globals().copy()
    exec(render(parse(text)), gbl)
    return gbl


def describe_generated_module():
    def test_binds_module_classes(packets_text, expect):
        gen = gen_code(packets_text)
        schema = gen["SCHEMA"]

        expect(schema["Handshake"] is gen["Handshake"]) == True
        expect(schema["Shape"] is gen["Shape"]) == True
        expect(schema.groups["Serverbound"].base is gen["Serverbound"]) == True

    def test_struct_round_trip(packets_text, expect):
        gen = gen_code(packets_text)
        Position = gen["Position"]

        packed = Position(x=1.5, y=-2.25).pack()
        expect(packed) == bytes.fromhex("3ff8000000000000c002000000000000")
        expect(Position.unpack(packed)) == (Position(x=1.5, y=-2.25), 16)

    def test_union(packets_text, expect):
        gen = gen_code(packets_text)
        Shape, Rect = gen["Shape"], gen["Rect"]

        expect(Rect(width=3, height=4).pack()) == b"\x01\x00\x03\x00\x04"
        expect(Shape.unpack(b"\x01\x00\x03\x00\x04")) == (Rect(width=3, height=4), 5)

    def test_packet_dispatch(packets_text, expect):
        gen = gen_code(packets_text)
        schema, Chat = gen["SCHEMA"], gen["Chat"]

        expect(schema.pack(Chat(message="hi"))) == b"\x01\x02hi"
        expect(schema.unpack("Serverbound", b"\x01\x02hi")) == (Chat(message="hi"), 4)
        with raises(UnknownPacketIdentifier):
            schema.unpack("Serverbound", b"\x09")

    def test_direction_interfaces(packets_text, expect):
        gen = gen_code(packets_text)

        expect(issubclass(gen["Sighting"], Encodable)) == False
        expect(issubclass(gen["Handshake"], Decodable)) == True
        expect(issubclass(gen["KeepAlive"], Decodable)) == False
        expect(issubclass(gen["Chat"], Encodable)) == True

    def test_externs_need_load_schema(expect):
        import uuid

        from wirepack.proto.serialization import read_exact

        class UuidCodec:
            def decode(self, source):
                return uuid.UUID(bytes=read_exact(source, 16))

            def encode(self, value, sink):
                sink.write(value.bytes)

        gen = gen_code("extern Uuid\ngroup Sessions { Login = 1 { session: Uuid } }")
        expect("SCHEMA" in gen) == False

        schema = gen["load_schema"](custom={"Uuid": UuidCodec()})
        login = gen["Login"](session=uuid.UUID(int=7))
        expect(schema.pack(login)) == b"\x01" + (7).to_bytes(16, "big")

    def test_runtime_names_do_not_clash(expect):
        gen = gen_code("struct Schema { a: u8 }\nstruct Packet { b: u8 }\ngroup Any { Optional = 1 { s: Schema } }")
        schema = gen["SCHEMA"]

        expect(schema["Schema"] is gen["Schema"]) == True
        packet = gen["Optional"](s=gen["Schema"](a=5))
        expect(schema.pack(packet)) == b"\x01\x05"
        expect(schema.unpack("Any", b"\x01\x05")) == (packet, 2)


def describe_rendered_source():
    def test_annotations(expect):
        code = render(
            parse(
                """
                struct Point { x: i32 }
                struct Holder {
                    items: Point[]
                    maybe: string?
                    lookup: map<string, f64>
                }
                """
            )
        )
        expect("    items: list[Point]" in code) == True
        expect("    maybe: _Optional[str]" in code) == True
        expect("    lookup: dict[str, float]" in code) == True

    def test_empty_struct(expect):
        code = render(parse("struct Nothing {}"))
        expect("class Nothing(_Decodable, _Encodable):\n    pass" in code) == True

    def test_schema_file(expect):
        with open(PACKETS_SCHEMA, encoding="utf-8") as f:
            code = render(parse(f.read()))
        expect("class Clientbound(_Packet):" in code) == True
        expect("class KeepAlive(Clientbound, _Encodable):" in code) == True
        expect("class Circle(Shape):" in code) == True
        expect("SCHEMA = load_schema()" in code) == True
