"""Tests for size calculation."""

from wirepack.generator import parse
from wirepack.generator.sizes import SizeKind, calculate_sizes


def describe_primitive_sizes():
    def calculates_fixed_primitives(packets_text, expect):
        info = calculate_sizes(parse(packets_text))

        expect(info.types["Numbers"].size.min_size) == 43
        expect(info.types["Numbers"].size.max_size) == 43
        expect(info.types["Numbers"].size.kind) == SizeKind.FIXED
        expect(info.types["Position"].size.is_fixed) == True

    def calculates_varint_sizes(expect):
        info = calculate_sizes(parse("struct V { a: varint, b: varlong }"))

        expect(info.types["V"].size.min_size) == 2
        expect(info.types["V"].size.max_size) == 15
        expect(info.types["V"].size.kind) == SizeKind.BOUNDED

    def calculates_string_size(expect):
        info = calculate_sizes(parse("struct S { text: string }"))

        # 3-byte length prefix for the largest string
        expect(info.types["S"].size.min_size) == 1
        expect(info.types["S"].size.max_size) == 32770
        expect(info.types["S"].size.is_bounded) == True


def describe_container_sizes():
    def sequences_are_unbounded(packets_text, expect):
        info = calculate_sizes(parse(packets_text))

        expect(info.types["Node"].size.min_size) == 2
        expect(info.types["Node"].size.max_size) == None
        expect(info.types["Node"].size.kind) == SizeKind.UNBOUNDED

    def optional_adds_presence_byte(expect):
        info = calculate_sizes(parse("struct O { v: u16? }"))

        expect(info.types["O"].size.min_size) == 1
        expect(info.types["O"].size.max_size) == 3
        expect(info.types["O"].size.kind) == SizeKind.BOUNDED

    def recursive_optional_is_unbounded(expect):
        info = calculate_sizes(parse("struct Link { value: u8, next: Link? }"))

        expect(info.types["Link"].size.min_size) == 2
        expect(info.types["Link"].size.max_size) == None

    def externs_are_unbounded(expect):
        info = calculate_sizes(parse("extern Blob\nstruct Wrapper { tag: u8, blob: Blob }"))

        expect(info.types["Wrapper"].size.min_size) == 1
        expect(info.types["Wrapper"].size.kind) == SizeKind.UNBOUNDED


def describe_enum_sizes():
    def spans_smallest_and_largest_variant(packets_text, expect):
        info = calculate_sizes(parse(packets_text))

        expect(info.types["Shape"].size.min_size) == 1
        expect(info.types["Shape"].size.max_size) == 5
        expect(info.types["Shape"].size.kind) == SizeKind.BOUNDED

    def varint_discriminant(expect):
        info = calculate_sizes(parse("enum E: varint { A = 0 B = 1 { x: u32 } }"))

        expect(info.types["E"].size.min_size) == 1
        expect(info.types["E"].size.max_size) == 9


def describe_packet_sizes():
    def includes_packet_identifier(packets_text, expect):
        info = calculate_sizes(parse(packets_text))
        serverbound = info.packets["Serverbound"]

        expect(serverbound["Handshake"].size.min_size) == 5
        expect(serverbound["Handshake"].size.max_size) == 32778
        expect(serverbound["Report"].size.min_size) == 18
        expect(serverbound["Report"].size.max_size) == 27
        expect(info.packets["Clientbound"]["KeepAlive"].size.kind) == SizeKind.FIXED
        expect(info.packets["Clientbound"]["KeepAlive"].size.min_size) == 9

    def multi_byte_identifier(expect):
        info = calculate_sizes(parse("group G { Big = 300 { v: u8 } }"))

        expect(info.packets["G"]["Big"].size.min_size) == 3
        expect(info.packets["G"]["Big"].size.max_size) == 3

    def schema_min_and_max(packets_text, expect):
        info = calculate_sizes(parse(packets_text))

        expect(info.min_packet_size) == 2
        expect(info.max_packet_size) == None

    def bounded_schema_max(expect):
        info = calculate_sizes(parse("group G { A = 1 { v: u8 } B = 2 { v: u32 } }"))

        expect(info.min_packet_size) == 2
        expect(info.max_packet_size) == 5

    def schema_without_groups(expect):
        info = calculate_sizes(parse("struct A { v: u8 }"))

        expect(info.packets) == {}
        expect(info.min_packet_size) == 0
