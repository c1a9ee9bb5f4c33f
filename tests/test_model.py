import pytest

from stack_triage.model import (
    Arg,
    Args,
    Call,
    Function,
    Signature,
    TEST_MAIN_SOURCE,
)

PTR_A = 0xC420010000
PTR_B = 0xC420098000


def _call(*values: int, line: int = 10, func: str = "main.worker") -> Call:
    return Call(
        source_path="/home/user/src/app/main.go",
        line=line,
        func=Function(func),
        args=Args(values=[Arg(value) for value in values]),
    )


def _signature(*calls: Call, state: str = "chan receive", sleep: int = 0, locked: bool = False) -> Signature:
    return Signature(state=state, sleep=sleep, locked=locked, stack=list(calls))


def test_function_name_parts() -> None:
    func = Function("github.com/acme/server.(*Conn).Serve")
    assert func.name == "(*Conn).Serve"
    assert func.pkg_name == "server"
    assert func.pkg_dot_name == "server.(*Conn).Serve"
    assert func.is_exported


def test_function_unescapes_package_name() -> None:
    func = Function("gopkg.in/yaml%2ev2.unmarshal")
    assert str(func) == "gopkg.in/yaml.v2.unmarshal"
    assert func.pkg_name == "yaml.v2"
    assert func.name == "unmarshal"
    assert not func.is_exported


def test_function_main_main_is_exported() -> None:
    assert Function("main.main").is_exported
    assert not Function("main.worker").is_exported


def test_function_without_package() -> None:
    func = Function("goexit")
    assert func.name == "goexit"
    assert func.pkg_name == ""
    assert func.pkg_dot_name == "goexit"


@pytest.mark.parametrize(
    "value, expected",
    [
        (16 * 1024 * 1024 + 1, True),
        (16 * 1024 * 1024, False),
        (2**63, False),
        (2**63 - 1, False),
        (0, False),
        (PTR_A, True),
    ],
)
def test_arg_pointer_heuristic(value: int, expected: bool) -> None:
    assert Arg(value).is_ptr is expected


def test_arg_display() -> None:
    assert str(Arg(0)) == "0"
    assert str(Arg(0x20)) == "0x20"
    assert str(Arg(PTR_A, name="#1")) == "#1"


def test_args_display_prefers_processed_and_marks_elision() -> None:
    args = Args(values=[Arg(1), Arg(2)], elided=True)
    assert str(args) == "0x1, 0x2, ..."
    args.processed = ["conn", "len"]
    assert str(args) == "conn, len, ..."


def test_args_similar_only_tolerates_pointer_differences() -> None:
    base = Args(values=[Arg(PTR_A), Arg(3)])
    assert base.similar(Args(values=[Arg(PTR_B), Arg(3)]))
    assert not base.equal(Args(values=[Arg(PTR_B), Arg(3)]))
    assert not base.similar(Args(values=[Arg(PTR_A), Arg(4)]))
    assert not base.similar(Args(values=[Arg(5), Arg(3)]))
    assert not base.similar(Args(values=[Arg(PTR_A), Arg(3)], elided=True))
    assert not base.similar(Args(values=[Arg(PTR_A)]))


def test_args_merge_wildcards_differences() -> None:
    left = Args(values=[Arg(PTR_A), Arg(3)], elided=True)
    right = Args(values=[Arg(PTR_B), Arg(3)], elided=True)
    merged = left.merge(right)
    assert merged.values == [Arg(PTR_A, name="*"), Arg(3)]
    assert merged.elided
    assert str(merged) == "*, 0x3, ..."
    # The operands are left untouched.
    assert left.values[0].name == ""


def test_call_source_helpers() -> None:
    call = Call(source_path="/usr/local/go/src/net/http/server.go", line=1726)
    assert call.source_name == "server.go"
    assert call.source_line == "server.go:1726"
    assert call.full_source_line == "/usr/local/go/src/net/http/server.go:1726"
    assert call.pkg_source == "http/server.go"


def test_call_pkg_source_for_unavailable_frame() -> None:
    assert Call(source_path="<unavailable>").pkg_source == "<unavailable>"


def test_call_is_stdlib() -> None:
    roots = ("/usr/local/go",)
    assert Call(source_path="/usr/local/go/src/runtime/proc.go").is_stdlib(roots)
    assert not Call(source_path="/home/user/src/app/main.go").is_stdlib(roots)
    assert Call(source_path="/tmp/go-build1/_test/_testmain.go").is_stdlib(())
    assert TEST_MAIN_SOURCE == "_test/_testmain.go"


def test_call_is_stdlib_uses_default_roots() -> None:
    assert Call(source_path="/usr/lib/go/src/runtime/proc.go").is_stdlib()
    assert Call(source_path="c:/go/src/runtime/proc.go").is_stdlib()


def test_call_is_pkg_main() -> None:
    assert _call().is_pkg_main
    assert not _call(func="net/http.(*conn).serve").is_pkg_main


def test_call_similar_never_approximates_location() -> None:
    assert not _call(PTR_A, line=10).similar(_call(PTR_B, line=11))
    assert not _call(PTR_A, func="main.a").similar(_call(PTR_B, func="main.b"))
    assert _call(PTR_A).similar(_call(PTR_B))


def test_signature_equal_ignores_sleep_and_locked() -> None:
    left = _signature(_call(1), sleep=3, locked=True)
    right = _signature(_call(1), sleep=9, locked=False)
    assert left.equal(right)
    assert left.similar(right)


def test_signature_equal_and_similar_are_reflexive() -> None:
    signature = _signature(_call(PTR_A, 1), _call(2, line=20))
    signature.created_by = Call(source_path="/app/main.go", line=3, func=Function("main.main"))
    assert signature.equal(signature)
    assert signature.similar(signature)


def test_signature_relations_check_shape() -> None:
    base = _signature(_call(1))
    assert not base.equal(_signature(_call(1), state="running"))
    assert not base.equal(_signature(_call(1), _call(1)))
    elided = _signature(_call(1))
    elided.stack_elided = True
    assert not base.similar(elided)
    created = _signature(_call(1))
    created.created_by = Call(func=Function("main.main"))
    assert not base.similar(created)


def test_signature_merge_of_equal_signatures() -> None:
    left = _signature(_call(PTR_A, 1), sleep=3)
    right = _signature(_call(PTR_A, 1), sleep=4, locked=True)
    merged = left.merge(right)
    assert merged.sleep == 4
    assert merged.locked
    assert merged.stack == left.stack
    assert all(arg.name != "*" for call in merged.stack for arg in call.args.values)


def test_signature_merge_of_similar_signatures() -> None:
    left = _signature(_call(PTR_A, 1), sleep=2)
    left.created_by = Call(source_path="/app/main.go", line=3, func=Function("main.main"))
    right = _signature(_call(PTR_B, 1), sleep=2)
    right.created_by = Call(source_path="/app/main.go", line=3, func=Function("main.main"))
    merged = left.merge(right)
    assert merged is not left
    assert merged.sleep == 2
    assert merged.state == left.state
    assert merged.created_by is left.created_by
    assert str(merged.stack[0].args) == "*, 0x1"
    assert left.similar(merged)
