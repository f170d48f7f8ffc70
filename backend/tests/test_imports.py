"""Tests for static import scanning."""

from stencil_broker.transform.imports import find_static_imports

CODE = """import { proxyCustomElement, HTMLElement } from '@stencil/core/internal/client';
import { B as Button, d as defineCustomElement$1 } from './components/button.js';
import * as helpers from "../helpers.js";
import register, { setup } from './register.js';
import './global.css';
const lazy = () => import('./lazy.js');
"""


def test_finds_every_static_import() -> None:
    specifiers = [ref.specifier for ref in find_static_imports(CODE)]
    assert specifiers == [
        "@stencil/core/internal/client",
        "./components/button.js",
        "../helpers.js",
        "./register.js",
        "./global.css",
    ]


def test_parses_bindings() -> None:
    refs = {ref.specifier: ref for ref in find_static_imports(CODE)}

    button = refs["./components/button.js"]
    assert button.named_imports == {"B": "Button", "d": "defineCustomElement$1"}

    assert refs["../helpers.js"].namespace_import == "helpers"

    register = refs["./register.js"]
    assert register.default_import == "register"
    assert register.named_imports == {"setup": "setup"}

    assert refs["./global.css"].clause is None


def test_relative_detection_and_offsets() -> None:
    for ref in find_static_imports(CODE):
        assert CODE[ref.specifier_start : ref.specifier_end] == ref.specifier
        assert ref.is_relative == ref.specifier.startswith(".")


def test_ignores_imports_in_strings_and_comments() -> None:
    code = (
        "// import './commented.js';\n"
        "/* import { a } from './block.js'; */\n"
        'const hint = "see import \'./quoted.js\'";\n'
        "const tpl = `import './template.js'`;\n"
        "import { real } from './real.js';\n"
    )
    assert [ref.specifier for ref in find_static_imports(code)] == ["./real.js"]
