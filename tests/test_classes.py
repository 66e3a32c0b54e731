from __future__ import annotations

import logging

import pytest

from tslite.errors import RuntimeErrorKind, TsRuntimeError

ANIMALS = '''
class Animal {
    name = "animal"
    legs = 4

    constructor(name: string) {
        this.name = name
    }

    describe(): string {
        return this.name + " has " + this.legs + " legs"
    }
}

class Bird extends Animal {
    legs = 2

    constructor(name: string) {
        super(name)
        this.flies = true
    }

    speak() {
        return "tweet"
    }
}
'''


def test_inheritance_and_field_initializers(run) -> None:
    out = run(ANIMALS + 'const b = new Bird("robin")\nprint(b.describe())\nprint(b.speak())\nprint(b)').lines
    assert out == ["robin has 2 legs", "tweet", 'Bird {name: "robin", legs: 2, flies: true}']


def test_constructor_is_inherited(run) -> None:
    out = run(ANIMALS + 'class Dog extends Animal {}\nprint(new Dog("rex").describe())').output
    assert out == "rex has 4 legs\n"


def test_fields_see_this(run) -> None:
    source = "class P {\n    a = 2\n    b = this.a * 10\n}\nprint(new P().b)"
    assert run(source).output == "20\n"


def test_methods_see_instance_state(run) -> None:
    source = '''
class Counter {
    count = 0

    makeInc() {
        return () => {
            this.count++
            return this.count
        }
    }
}
const c = new Counter()
const inc = c.makeInc()
inc()
print(inc(), c.count)
'''
    assert run(source).output == "2 2\n"


def test_detached_method_keeps_receiver(run) -> None:
    source = "class A {\n    v = 7\n    get() {\n        return this.v\n    }\n}\nconst g = new A().get\nprint(g())"
    assert run(source).output == "7\n"


def test_subclass_overrides_method(run) -> None:
    source = '''
class Base {
    who() {
        return "base"
    }
    hello() {
        return "hello from " + this.who()
    }
}
class Derived extends Base {
    who() {
        return "derived"
    }
}
print(new Base().hello(), new Derived().hello())
'''
    assert run(source).output == "hello from base hello from derived\n"


def test_implements_is_not_enforced(run, caplog) -> None:
    source = '''
interface Helper {
    needHelp(nice: boolean)
    superDuperHelper(): Promise<string>
}
class Partial implements Helper {
    needHelp(nice = true) {
        return nice
    }
}
print(new Partial().needHelp())
'''
    with caplog.at_level(logging.DEBUG, logger="tslite.interp"):
        outcome = run(source)
    assert outcome.output == "true\n"
    assert outcome.result.globals["Partial"].interfaces == ["Helper"]
    assert "does not implement Helper.superDuperHelper" in caplog.text


def test_each_declared_interface_is_checked(run, caplog) -> None:
    source = '''
interface Named {
    name: string
}
interface Greeter {
    greet(): string
}
class Quiet implements Named, Greeter {
    name = "q"
}
print(new Quiet().name)
'''
    with caplog.at_level(logging.DEBUG, logger="tslite.interp"):
        outcome = run(source)
    assert outcome.output == "q\n"
    assert outcome.result.globals["Quiet"].interfaces == ["Named", "Greeter"]
    assert "does not implement Greeter.greet" in caplog.text
    assert "Named.name" not in caplog.text


def test_async_method(run) -> None:
    source = '''
class T {
    async help(): Promise<string> {
        return "it helped"
    }
}
async function go() {
    const t = new T()
    print(await t.help())
}
go()
'''
    assert run(source).output == "it helped\n"


def test_class_called_without_new(run) -> None:
    with pytest.raises(TsRuntimeError) as info:
        run("class A {}\nA()")
    assert info.value.error_kind is RuntimeErrorKind.NOT_CALLABLE
    assert "without 'new'" in info.value.message


def test_new_on_non_class(run) -> None:
    with pytest.raises(TsRuntimeError) as info:
        run("const f = () => 1\nnew f()")
    assert info.value.error_kind is RuntimeErrorKind.NOT_CALLABLE


def test_missing_method(run) -> None:
    with pytest.raises(TsRuntimeError) as info:
        run("class A {}\nnew A().nope()")
    assert info.value.error_kind is RuntimeErrorKind.NOT_CALLABLE


def test_extending_a_non_class(run) -> None:
    with pytest.raises(TsRuntimeError) as info:
        run("const x = 1\nclass A extends x {}")
    assert info.value.error_kind is RuntimeErrorKind.TYPE_MISMATCH


def test_generic_class(run) -> None:
    source = '''
class Box<T> {
    value: T
    constructor(value: T) {
        this.value = value
    }
}
print(new Box<number>(3), new Box("s").value)
'''
    assert run(source).output == 'Box {value: 3} s\n'
