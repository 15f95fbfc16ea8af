"""Test helpers for running the challenge handshake."""


def login(services, signer, agent_id=None):
    """Run the challenge/verify handshake and return the issued token."""
    agent_id = agent_id or signer.agent_id
    challenge = services.challenges.create_challenge(agent_id, signer.algorithm)
    return services.tokens.verify_and_issue(
        agent_id,
        signer.algorithm,
        signer.public_key,
        challenge.challenge,
        signer.sign(challenge.challenge),
    )


def fresh_credential(services, signer, agent_id=None):
    """Issue a challenge for the signer and return the signed credential."""
    challenge = services.challenges.create_challenge(agent_id or signer.agent_id, signer.algorithm)
    return signer.credential(challenge.challenge)
