import unittest
import sys
import os

# Add scripts/ to path to import modules
sys.path.append(os.path.join(os.path.dirname(__file__), "../scripts"))

from indexer import RESERVED_COMMANDS, TclSyntaxError, file_scope_name, scan_source


def edges_of(text, path="x.tcl"):
    return scan_source(text, path).edges


class TestProcedureScanner(unittest.TestCase):
    def test_procs_and_calls_in_source_order(self):
        result = scan_source("proc a {} { b; c }\nproc b {} { c }\n", "lib.tcl")
        self.assertEqual(result.path, "lib.tcl")
        self.assertEqual(result.declared, ["a", "b"])
        self.assertEqual(result.edges, [("a", "b"), ("a", "c"), ("b", "c")])

    def test_calls_outside_procs_use_file_scope(self):
        self.assertEqual(file_scope_name("src/main.tcl"), "<file:src/main.tcl>")
        edges = edges_of("setup_env\nproc a {} { b }\nmain_loop 3\n", "src/main.tcl")
        self.assertEqual(
            edges,
            [
                ("<file:src/main.tcl>", "setup_env"),
                ("a", "b"),
                ("<file:src/main.tcl>", "main_loop"),
            ],
        )

    def test_reserved_commands_are_not_edges(self):
        for word in ("set", "puts", "return", "if", "proc", "expr", "namespace"):
            self.assertIn(word, RESERVED_COMMANDS)
        edges = edges_of("proc a {x} {\n  set y [b $x]\n  puts $y\n  return [c]\n}\n")
        self.assertEqual(edges, [("a", "b"), ("a", "c")])

    def test_arguments_substitutions_depth_first(self):
        edges = edges_of("proc a {} { outer [mid [inner]] [last] }")
        self.assertEqual(edges, [("a", "outer"), ("a", "mid"), ("a", "inner"), ("a", "last")])

    def test_computed_command_names_are_invisible(self):
        edges = edges_of("proc a {cb} {\n  $cb 1\n  ${cb} 2\n  [getter] arg\n  my\\ cmd\n}\n")
        self.assertEqual(edges, [("a", "getter")])

    def test_namespace_qualified_names_are_kept_verbatim(self):
        edges = edges_of("proc ::ns::a {} { ::ns::b; helper }")
        self.assertEqual(edges, [("::ns::a", "::ns::b"), ("::ns::a", "helper")])

    def test_nested_proc_gets_its_own_scope(self):
        result = scan_source("proc outer {} {\n  proc inner {} { leaf }\n  helper\n}\n")
        self.assertEqual(result.declared, ["outer", "inner"])
        self.assertEqual(result.edges, [("inner", "leaf"), ("outer", "helper")])

    def test_quoted_and_braced_proc_names(self):
        result = scan_source('proc {spaced name} {} { a }\nproc "quoted" {} { b }\n')
        self.assertEqual(result.declared, ["spaced name", "quoted"])
        self.assertEqual(result.edges, [("spaced name", "a"), ("quoted", "b")])

    def test_malformed_proc_only_contributes_substitutions(self):
        result = scan_source("proc broken [make_name]\n")
        self.assertEqual(result.declared, [])
        self.assertEqual(result.edges, [("<file:<string>>", "make_name")])

    def test_comments_are_ignored(self):
        edges = edges_of("# call_me\nproc a {} {\n  # not_me\n  real ;# nor_me\n}\n")
        self.assertEqual(edges, [("a", "real")])

    def test_if_elseif_else(self):
        text = (
            "proc a {} {\n"
            "  if {[check]} { yes } elseif {$x > [limit]} then { maybe } else { no }\n"
            "  if {$y} { only }\n"
            "  if {$z} { first } { implicit_else }\n"
            "}\n"
        )
        self.assertEqual(
            [callee for _, callee in edges_of(text)],
            ["check", "yes", "limit", "maybe", "no", "only", "first", "implicit_else"],
        )

    def test_loops(self):
        text = (
            "proc a {items} {\n"
            "  while {[more]} { step_one }\n"
            "  for {init_it} {[cond]} {advance} { body }\n"
            "  foreach x $items { process $x }\n"
            "  lmap x [fetch] { convert $x }\n"
            "}\n"
        )
        self.assertEqual(
            [callee for _, callee in edges_of(text)],
            ["more", "step_one", "init_it", "cond", "advance", "body", "process", "fetch", "convert"],
        )

    def test_switch_braced_and_inline(self):
        text = (
            "proc a {x} {\n"
            "  switch -exact -- $x {\n"
            "    one { first }\n"
            "    two -\n"
            "    three { second }\n"
            "    default { fallback }\n"
            "  }\n"
            "  switch -glob [pick] a* { inline_a } b* { inline_b }\n"
            "}\n"
        )
        self.assertEqual(
            [callee for _, callee in edges_of(text)],
            ["first", "second", "fallback", "pick", "inline_a", "inline_b"],
        )

    def test_try_catch_and_time(self):
        text = (
            "proc a {} {\n"
            "  try { risky } on error {msg opts} { handle } trap {POSIX} {m o} { trapped } finally { cleanup }\n"
            "  catch { fragile } err\n"
            "  time { measured } 10\n"
            "}\n"
        )
        self.assertEqual(
            [callee for _, callee in edges_of(text)],
            ["risky", "handle", "trapped", "cleanup", "fragile", "measured"],
        )

    def test_namespace_eval_and_uplevel(self):
        text = "namespace eval ns {\n  helper\n  proc p {} { uplevel 1 { caller_side } }\n}\n"
        result = scan_source(text, "ns.tcl")
        self.assertEqual(result.declared, ["p"])
        self.assertEqual(result.edges, [("<file:ns.tcl>", "helper"), ("p", "caller_side")])

    def test_expr_only_contributes_substitutions(self):
        edges = edges_of("proc a {} { set y [expr {[f] + sqrt(2)}] }")
        self.assertEqual(edges, [("a", "f")])

    def test_eval_is_opaque(self):
        edges = edges_of("proc a {} { eval b c; eval [d] }")
        self.assertEqual(edges, [])

    def test_self_recursion_is_recorded(self):
        edges = edges_of("proc r {n} { if {$n > 0} { r [expr {$n - 1}] } }")
        self.assertEqual(edges, [("r", "r")])

    def test_redefinition_keeps_both_declarations(self):
        result = scan_source("proc a {} { b }\nproc a {} { c }\n")
        self.assertEqual(result.declared, ["a", "a"])
        self.assertEqual(result.edges, [("a", "b"), ("a", "c")])

    def test_crlf_source(self):
        edges = edges_of("proc a {} {\r\n  b\r\n}\r\n")
        self.assertEqual(edges, [("a", "b")])

    def test_dict_script_subcommands(self):
        text = (
            "proc a {d} {\n"
            "  dict for {k v} $d {\n    helper $k\n  }\n"
            "  dict map {k v} [load_dict] { convert $v }\n"
            "  dict with cfg { apply_cfg }\n"
            "  dict update cfg key value { touch $value }\n"
            "  dict get $d [pick_key]\n"
            "}\n"
        )
        self.assertEqual(
            [callee for _, callee in edges_of(text)],
            ["helper", "load_dict", "convert", "apply_cfg", "touch", "pick_key"],
        )

    def test_after_scripts(self):
        text = (
            "after idle { tick }\n"
            "after 100 [list poll_later]\n"
            "after 250 { refresh }\n"
            "after cancel [pending_id]\n"
            "after 10\n"
        )
        self.assertEqual(
            edges_of(text, "loop.tcl"),
            [
                ("<file:loop.tcl>", "tick"),
                ("<file:loop.tcl>", "refresh"),
                ("<file:loop.tcl>", "pending_id"),
            ],
        )

    def test_syntax_error_propagates(self):
        with self.assertRaises(TclSyntaxError):
            scan_source("proc a {} {\n  b\n")

    def test_unbalanced_brace_inside_body_is_an_error(self):
        with self.assertRaises(TclSyntaxError):
            scan_source('proc a {} { puts "x }\n')


if __name__ == "__main__":
    unittest.main()
