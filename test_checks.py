#!/usr/bin/env python3
"""Tests for dockerlint.checks - per-instruction checks."""

import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(__file__))
from dockerlint import checks
from dockerlint.checks import CheckContext

CTX = CheckContext(stage_names=("",))


class TestDispatch(unittest.TestCase):
    """Test the keyword dispatch table."""

    def test_unknown_keyword(self):
        """Keywords with no registry entry are invalid commands."""
        self.assertEqual(checks.run_check("bogus", "x", CTX), ["invalid_command"])

    def test_keyword_without_checks(self):
        """Valid instructions without checks raise nothing."""
        for keyword in ("cmd", "copy", "entrypoint", "volume", "arg", "onbuild", "stopsignal"):
            self.assertEqual(checks.run_check(keyword, "whatever it is", CTX), [], keyword)

    def test_all_directives_registered(self):
        """Every checked directive has a registered function."""
        for keyword in ("from", "run", "label", "maintainer", "expose", "env", "add",
                        "user", "workdir", "shell", "healthcheck"):
            self.assertIsNotNone(checks.CHECKS.get(keyword), keyword)

    def test_run_dispatches_to_shell(self):
        """RUN bodies go through the package-manager heuristics."""
        self.assertIn("apt-get_missing_param", checks.run_check("run", "apt-get install curl", CTX))


class TestFrom(unittest.TestCase):
    """Test FROM base image checks."""

    def test_missing_tag(self):
        """An untagged image is reported."""
        self.assertEqual(checks.check_from("ubuntu", CTX), ["missing_tag"])

    def test_latest_tag(self):
        """The latest tag is reported."""
        self.assertEqual(checks.check_from("ubuntu:latest", CTX), ["latest_tag"])

    def test_pinned_tag(self):
        """A pinned tag passes."""
        self.assertEqual(checks.check_from("ubuntu:20.04", CTX), [])

    def test_scratch(self):
        """scratch needs no tag."""
        self.assertEqual(checks.check_from("scratch", CTX), [])

    def test_digest(self):
        """A digest reference passes."""
        self.assertEqual(checks.check_from("ubuntu@sha256:abcdef", CTX), [])

    def test_platform_flag_skipped(self):
        """--platform is not mistaken for the image."""
        self.assertEqual(checks.check_from("--platform=linux/amd64 ubuntu:22.04", CTX), [])
        self.assertEqual(checks.check_from("--platform=linux/amd64 ubuntu", CTX), ["missing_tag"])

    def test_platform_without_image(self):
        """--platform alone is missing its image."""
        self.assertEqual(checks.check_from("--platform=linux/amd64", CTX), ["missing_args"])

    def test_registry_port_is_not_a_tag(self):
        """A registry port is not read as a tag."""
        self.assertEqual(checks.check_from("localhost:5000/app", CTX), ["missing_tag"])
        self.assertEqual(checks.check_from("localhost:5000/app:1.0", CTX), [])

    def test_previous_stage(self):
        """A base image naming an earlier stage needs no tag."""
        self.assertEqual(checks.check_from("build", CheckContext(("", "build"))), [])
        self.assertEqual(checks.check_from("build", CTX), ["missing_tag"])

    def test_alias_ignored_for_tag(self):
        """The `as name` suffix does not affect the tag check."""
        self.assertEqual(checks.check_from("node:18 as build", CTX), [])


class TestLabel(unittest.TestCase):
    """Test LABEL format checks."""

    def test_valid(self):
        """key=value pairs, quoted or not, pass."""
        self.assertEqual(checks.check_label('version="1.0" description="a b"', CTX), [])

    def test_legacy_form_rejected(self):
        """The `LABEL key value` form is invalid."""
        self.assertEqual(checks.check_label("version 1.0", CTX), ["label_invalid"])

    def test_empty_key(self):
        """A pair without a key is invalid."""
        self.assertEqual(checks.check_label("=1.0", CTX), ["label_invalid"])


class TestMaintainer(unittest.TestCase):
    """Test MAINTAINER checks."""

    def test_no_email(self):
        """No address is missing arguments, and still deprecated."""
        self.assertEqual(checks.check_maintainer("john", CTX), ["missing_args", "deprecated_in_1.13"])

    def test_one_email(self):
        """One address is only deprecated."""
        self.assertEqual(checks.check_maintainer("john <john@example.com>", CTX), ["deprecated_in_1.13"])

    def test_many_emails(self):
        """More than one address is extra arguments."""
        self.assertEqual(checks.check_maintainer("a@b.com c@d.com", CTX), ["extra_args", "deprecated_in_1.13"])


class TestExpose(unittest.TestCase):
    """Test EXPOSE port checks."""

    def test_valid_ports(self):
        """Ports in range with an optional protocol pass."""
        self.assertEqual(checks.check_expose("80 443/tcp 53/udp 0 65535", CTX), [])

    def test_host_port(self):
        """Host port bindings are reported once, not as invalid ports."""
        self.assertEqual(checks.check_expose("8080:80", CTX), ["expose_host_port"])

    def test_out_of_range(self):
        """Ports above 65535 are invalid."""
        self.assertEqual(checks.check_expose("65536", CTX), ["invalid_port"])
        self.assertEqual(checks.check_expose("99999", CTX), ["invalid_port"])

    def test_bad_protocol_and_text(self):
        """Each bad port is reported separately."""
        self.assertEqual(checks.check_expose("80/sctp abc", CTX), ["invalid_port", "invalid_port"])

    def test_port_validator(self):
        """Protocols are lower case, ranges are not ports."""
        self.assertTrue(checks.expose_port_valid("8080/tcp"))
        self.assertFalse(checks.expose_port_valid("8080/TCP"))
        self.assertFalse(checks.expose_port_valid("80-90"))


class TestEnv(unittest.TestCase):
    """Test ENV format checks."""

    def test_legacy_form(self):
        """`ENV key value` is accepted."""
        self.assertEqual(checks.check_env("key value with spaces", CTX), [])

    def test_pairs(self):
        """key=value pairs are accepted."""
        self.assertEqual(checks.check_env('a=1 b="two words"', CTX), [])

    def test_bad_pairs(self):
        """A bare word after a pair is invalid."""
        self.assertEqual(checks.check_env("a=1 b", CTX), ["invalid_format"])

    def test_empty(self):
        """No arguments raise nothing here."""
        self.assertEqual(checks.check_env("", CTX), [])


class TestAdd(unittest.TestCase):
    """Test ADD source and destination checks."""

    def test_single_argument(self):
        """ADD needs a source and a destination."""
        self.assertEqual(checks.check_add("file", CTX), ["missing_args"])

    def test_simple(self):
        """One source and a destination pass."""
        self.assertEqual(checks.check_add("app.tar.gz /app", CTX), [])

    def test_source_outside_context(self):
        """Parent and absolute sources are outside the build context."""
        self.assertEqual(checks.check_add("../secret /app", CTX), ["add_src_invalid"])
        self.assertEqual(checks.check_add("/etc/passwd /app", CTX), ["add_src_invalid"])

    def test_many_sources_need_directory(self):
        """Several sources need a destination ending in /."""
        self.assertEqual(checks.check_add("a b /dest", CTX), ["add_dest_invalid"])
        self.assertEqual(checks.check_add("a b /dest/", CTX), [])

    def test_wildcard_needs_directory(self):
        """Wildcard sources need a destination ending in /."""
        self.assertEqual(checks.check_add("*.txt /dest", CTX), ["add_dest_invalid"])
        self.assertEqual(checks.check_add("file?.txt /dest/", CTX), [])

    def test_flags_are_not_sources(self):
        """Leading --flags are skipped."""
        self.assertEqual(checks.check_add("--chown=app:app src /dest", CTX), [])


class TestUserWorkdir(unittest.TestCase):
    """Test USER and WORKDIR argument checks."""

    def test_user(self):
        """USER takes exactly one argument."""
        self.assertEqual(checks.check_user("app", CTX), [])
        self.assertEqual(checks.check_user("app extra", CTX), ["extra_args"])

    def test_workdir(self):
        """Unquoted paths with spaces are invalid."""
        self.assertEqual(checks.check_workdir("/app", CTX), [])
        self.assertEqual(checks.check_workdir("/my app", CTX), ["invalid_workdir"])

    def test_quoted_workdir(self):
        """Quoted paths may contain spaces."""
        self.assertEqual(checks.check_workdir('"/my app"', CTX), [])
        self.assertEqual(checks.check_workdir("'/my app'", CTX), [])


class TestShell(unittest.TestCase):
    """Test SHELL format checks."""

    def test_json_array(self):
        """The JSON array form passes."""
        self.assertEqual(checks.check_shell('["/bin/bash", "-c"]', CTX), [])

    def test_shell_form(self):
        """The plain shell form is invalid."""
        self.assertEqual(checks.check_shell("/bin/bash -c", CTX), ["invalid_format"])

    def test_json_object(self):
        """JSON that is not an array is invalid."""
        self.assertEqual(checks.check_shell('{"a": 1}', CTX), ["invalid_format"])


class TestHealthcheck(unittest.TestCase):
    """Test HEALTHCHECK option checks."""

    def test_none(self):
        """HEALTHCHECK NONE passes."""
        self.assertEqual(checks.check_healthcheck("none", CTX), [])

    def test_none_with_arguments(self):
        """HEALTHCHECK NONE takes no further arguments."""
        self.assertEqual(checks.check_healthcheck("none cmd true", CTX), ["invalid_format"])

    def test_plain_cmd(self):
        """A CMD without options passes."""
        self.assertEqual(checks.check_healthcheck("cmd curl -f http://localhost/ || exit 1", CTX), [])

    def test_options_with_values(self):
        """All known options with values pass, hyphenated names included."""
        args = "--interval=30s --timeout=3s --start-period=5s --retries=3 cmd curl -f http://x/"
        self.assertEqual(checks.check_healthcheck(args, CTX), [])

    def test_option_missing_value(self):
        """An option without `=value` is reported."""
        self.assertEqual(checks.check_healthcheck("--interval 30s cmd curl", CTX),
                         ["healthcheck_options_missing_args"])

    def test_unknown_option(self):
        """Unknown options are an invalid format."""
        self.assertEqual(checks.check_healthcheck("--foo=1 cmd curl", CTX), ["invalid_format"])


if __name__ == "__main__":
    unittest.main()
