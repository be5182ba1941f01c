"""Tests for the management CLI."""

from sqlalchemy import select


def test_add_product_seeds_catalogue(database, capsys):
    from catalogue.product.product import Product
    from manage import main

    main(["add-product", "Alebrije de cobre", "120", "--image", "https://img.example/a.png", "--image", "b.png"])

    product_id = capsys.readouterr().out.strip().splitlines()[-1]
    with database.session() as session:
        product = session.scalars(select(Product).where(Product.id == product_id)).one()
        assert str(product.price) == "120.00"
        assert [(image.url, image.is_principal) for image in product.images] == [
            ("https://img.example/a.png", True),
            ("b.png", False),
        ]


def test_setup_and_drop(database, capsys):
    from manage import main

    main(["drop-db"])
    main(["setup-db"])
    assert capsys.readouterr().out.count("Done.") == 2
