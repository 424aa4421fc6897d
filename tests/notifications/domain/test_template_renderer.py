"""Tests for the mustache-style template renderer."""

from notifications.templates.renderer import (
    compile_template,
    extract_variables,
    render,
    render_text,
)


class TestSubstitution:
    def test_simple_variable(self):
        assert render_text("Order {{orderNumber}} confirmed", {"orderNumber": "ORD-1"}) == "Order ORD-1 confirmed"

    def test_missing_variable_renders_empty(self):
        assert render_text("Hi {{name}}!", {}) == "Hi !"

    def test_dotted_path(self):
        assert render_text("{{order.number}}", {"order": {"number": "A1"}}) == "A1"

    def test_list_index_path(self):
        assert render_text("{{items.0.name}}", {"items": [{"name": "Kettle"}]}) == "Kettle"

    def test_path_through_missing_value(self):
        assert render_text("[{{order.number}}]", {"order": None}) == "[]"

    def test_whole_floats_render_without_decimal(self):
        assert render_text("{{amount}}", {"amount": 1499.0}) == "1499"
        assert render_text("{{amount}}", {"amount": 14.5}) == "14.5"

    def test_booleans_render_lowercase(self):
        assert render_text("{{flag}}", {"flag": True}) == "true"

    def test_none_source_stays_none(self):
        assert render_text(None, {"a": 1}) is None


class TestBlocks:
    def test_if_true_branch(self):
        source = "Hi {{#if name}}{{name}}{{else}}there{{/if}}"
        assert render_text(source, {"name": "Asha"}) == "Hi Asha"

    def test_if_else_branch(self):
        source = "Hi {{#if name}}{{name}}{{else}}there{{/if}}"
        assert render_text(source, {"name": ""}) == "Hi there"

    def test_each_over_dicts(self):
        source = "{{#each items}}{{@index}}:{{name}} x {{quantity}};{{/each}}"
        items = [{"name": "Tea", "quantity": 2}, {"name": "Mug", "quantity": 1}]
        assert render_text(source, {"items": items}) == "0:Tea x 2;1:Mug x 1;"

    def test_each_over_scalars_uses_this(self):
        assert render_text("{{#each tags}}[{{this}}]{{/each}}", {"tags": ["a", "b"]}) == "[a][b]"

    def test_each_item_through_list_name(self):
        source = "{{#each items}}{{items.sku}} {{/each}}"
        assert render_text(source, {"items": [{"sku": "S1"}, {"sku": "S2"}]}) == "S1 S2 "

    def test_each_over_non_list_renders_nothing(self):
        assert render_text("{{#each items}}x{{/each}}", {"items": 5}) == ""

    def test_outer_variables_visible_inside_each(self):
        source = "{{#each items}}{{name}} ({{currency}}) {{/each}}"
        assert render_text(source, {"items": [{"name": "Tea"}], "currency": "INR"}) == "Tea (INR) "


class TestMalformedTemplates:
    def test_unsupported_tags_render_as_nothing(self):
        assert render_text("a{{> partial}}b{{!comment}}c", {}) == "abc"

    def test_unclosed_block_closes_at_end(self):
        assert render_text("{{#if show}}visible", {"show": True}) == "visible"

    def test_stray_close_tag_is_ignored(self):
        assert render_text("text{{/each}}", {}) == "text"

    def test_output_never_contains_complete_tags(self):
        out = render_text("{{#each}}{{ }}{{#if}}{{/if}}{{unknown var}}", {})
        assert "{{" not in out

    def test_compiled_templates_are_cached(self):
        assert compile_template("{{x}}") is compile_template("{{x}}")


class TestRender:
    def test_renders_every_part(self):
        template = {
            "subject": "Order {{orderNumber}}",
            "title": "Confirmed",
            "content": "Total {{totalAmount}}",
            "html_content": "<p>{{customerName}}</p>",
        }
        rendered = render(template, {"orderNumber": "ORD-9", "totalAmount": 10, "customerName": "<Asha>"})
        assert rendered.subject == "Order ORD-9"
        assert rendered.title == "Confirmed"
        assert rendered.content == "Total 10"
        assert rendered.html_content == "<p>&lt;Asha&gt;</p>"

    def test_plain_text_is_not_escaped(self):
        rendered = render({"content": "{{name}}"}, {"name": "<b>"})
        assert rendered.content == "<b>"


class TestExtractVariables:
    def test_top_level_names_in_first_use_order(self):
        source = "Hi {{name}} {{#each items}}{{this.sku}}{{/each}}{{#if vip}}gold{{/if}} {{name}}"
        assert extract_variables(source) == ["name", "items", "vip"]

    def test_empty_source(self):
        assert extract_variables("") == []
