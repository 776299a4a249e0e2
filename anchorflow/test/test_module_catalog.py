import pytest

from anchorflow.noderegistry.ModuleCatalog import (
    CatalogError,
    ModuleTemplate,
    create_blank_node,
    create_node,
    create_start_node,
    get_template,
    list_templates,
    register_template,
)


class TestModuleCatalog:

    def test_builtins_registered(self):
        ids = [t.id for t in list_templates()]
        for expected in ("spl-token-mint", "nft-mint", "pda-account", "governance-proposal", "liquidity-pool"):
            assert expected in ids

    def test_unknown_template(self):
        with pytest.raises(CatalogError):
            get_template("does-not-exist")
        with pytest.raises(KeyError):
            create_node("does-not-exist")

    def test_duplicate_registration_rejected(self):
        with pytest.raises(ValueError):
            register_template(ModuleTemplate("nft-mint", "Again", "NFT", "nft", "dup"))

    def test_create_node_from_template(self):
        node = create_node("spl-token-mint")
        assert node.kind == "token"
        assert node.name == "SPL Token Mint"
        assert [p.name for p in node.inputs] == ["Mint Authority", "Token Account"]
        assert [p.type for p in node.outputs] == ["instruction"]

    def test_instances_get_fresh_ids(self):
        a = create_node("pda-account", name="Vault")
        b = create_node("pda-account")
        assert a.name == "Vault"
        assert a.id != b.id
        assert a.outputs[0].id != b.outputs[0].id
        assert a.is_account()

    def test_blank_account_has_no_ports(self):
        node = create_blank_node("account")
        assert node.name == "New Account"
        assert node.inputs == () and node.outputs == ()

    def test_blank_instruction_has_data_ports(self):
        node = create_blank_node("defi", name="Swap")
        assert node.name == "Swap"
        assert [(p.name, p.type) for p in node.inputs] == [("input", "data")]
        assert [(p.name, p.type) for p in node.outputs] == [("output", "data")]

    def test_start_node(self):
        node = create_start_node()
        assert node.kind == "start"
        assert node.name == "Program Start"
        assert node.inputs == ()
        assert node.outputs[0].type == "flow"

    def test_to_dict(self):
        out = get_template("liquidity-pool").to_dict()
        assert out["type"] == "defi"
        assert out["category"] == "DeFi"
        assert out["isBuiltIn"] is True
        assert out["inputs"][0] == {
            "name": "Token A", "type": "token", "required": True,
            "description": "First token of the pair",
        }
