# --- File: operauth/main.py ---
import argparse
import logging
import sys

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa, x25519

from operauth.core.config import settings
from operauth.db.base import SessionLocal, init_db
from operauth.services import credential_service, key_service, respond_service

logger = logging.getLogger(__name__)


def keygen(args) -> int:
    if args.scheme == "rsa":
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=args.bits)
        public_text = key_service.rsa_public_key_to_pem(private_key.public_key())
    else:
        private_key = x25519.X25519PrivateKey.generate()
        public_text = key_service.x25519_public_key_to_text(private_key.public_key()) + "\n"

    pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )
    with open(args.out, "wb") as f:
        f.write(pem)
    logger.info(f"Wrote {args.scheme} private key to {args.out}")
    sys.stdout.write(public_text)
    return 0


def respond(args) -> int:
    with open(args.key, "rb") as f:
        private_key = key_service.load_private_key(f.read())
    challenge_text = args.challenge if args.challenge else sys.stdin.read()
    try:
        response = respond_service.solve_challenge(private_key, challenge_text)
    except ValueError as e:
        logger.error(f"Could not answer challenge: {str(e)}")
        return 1
    print(f"+{response}")
    return 0


def add_oper(args) -> int:
    rsa_pem = None
    if args.rsa:
        with open(args.rsa, "r", encoding="utf-8") as f:
            rsa_pem = f.read()

    init_db()
    db = SessionLocal()
    try:
        credential_service.register_oper(
            db,
            name=args.name,
            user_mask=args.user_mask,
            host_mask=args.host_mask,
            rsa_public_key=rsa_pem,
            x25519_public_key=args.x25519,
            need_ssl=args.need_ssl,
            certfp=args.certfp
        )
    except ValueError as e:
        logger.error(f"Could not register oper {args.name}: {str(e)}")
        db.rollback()
        return 1
    finally:
        db.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=settings.PROJECT_NAME, description="Operator challenge-response tools")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("keygen", help="Generate an operator key pair")
    p.add_argument("scheme", choices=["rsa", "x25519"])
    p.add_argument("--out", required=True, help="Where to write the private key (PEM)")
    p.add_argument("--bits", type=int, default=2048)
    p.set_defaults(func=keygen)

    p = sub.add_parser("respond", help="Answer a challenge with a private key")
    p.add_argument("--key", required=True, help="Private key file (PEM)")
    p.add_argument("--challenge", help="Challenge text; read from stdin when omitted")
    p.set_defaults(func=respond)

    p = sub.add_parser("add-oper", help="Register an oper block in the credential database")
    p.add_argument("name")
    p.add_argument("--user-mask", default="*")
    p.add_argument("--host-mask", default="*")
    p.add_argument("--rsa", help="RSA public key file (PEM)")
    p.add_argument("--x25519", help="X25519 public key, base64 of the raw 32 bytes")
    p.add_argument("--need-ssl", action="store_true")
    p.add_argument("--certfp")
    p.set_defaults(func=add_oper)

    return parser


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
