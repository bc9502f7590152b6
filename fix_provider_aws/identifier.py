from itertools import islice
from typing import Iterator, List, Tuple

from attrs import frozen

from fix_provider_aws.errors import MalformedIdentifierError, ValidationError
from fix_provider_aws.utils import is_arn

ResourceIdSeparator = ","
ArnSeparator = ":"
# arn, partition, service, region, account, resource
ArnMinTokens = 6


@frozen
class ResourceIdCodec:
    """
    Encodes the parts of a composite resource identifier into a single string and back.

    With the colon separator, parts may be ARNs, which contain the separator themselves.
    Such identifiers are decoded by looking for the ARN structure. An input that could be read
    back in more than one way is rejected by both encode and decode.
    """

    arity: int
    separator: str = ResourceIdSeparator

    def encode(self, *parts: str) -> str:
        if len(parts) != self.arity:
            raise ValidationError(f"expected {self.arity} identifier parts, got {len(parts)}: {parts}")
        for part in parts:
            if not part:
                raise ValidationError(f"identifier parts must not be empty: {parts}")
            if self.separator in part and not (self.arn_aware and is_arn(part)):
                raise ValidationError(f"identifier part must not contain {self.separator!r}: {part}")
        identifier = self.separator.join(parts)
        if self.arn_aware and self._segmentations(identifier) != [list(parts)]:
            raise ValidationError(f"identifier parts can not be encoded unambiguously: {parts}")
        return identifier

    def decode(self, identifier: str) -> Tuple[str, ...]:
        found = self._segmentations(identifier)
        if not found:
            raise MalformedIdentifierError(
                identifier, f"expected {self.arity} non-empty parts separated by {self.separator!r}"
            )
        if len(found) > 1:
            raise MalformedIdentifierError(identifier, "identifier can be read in more than one way")
        return tuple(found[0])

    @property
    def arn_aware(self) -> bool:
        return self.separator == ArnSeparator

    def _segmentations(self, identifier: str) -> List[List[str]]:
        tokens = identifier.split(self.separator)
        if not self.arn_aware:
            return [tokens] if len(tokens) == self.arity and all(tokens) else []
        # two results are enough to detect ambiguity
        return list(islice(self._segment(tokens, 0, self.arity), 2))

    def _segment(self, tokens: List[str], start: int, remaining: int) -> Iterator[List[str]]:
        if remaining == 0:
            if start == len(tokens):
                yield []
            return
        if start >= len(tokens) or len(tokens) - start < remaining:
            return
        token = tokens[start]
        if token == "arn":
            for end in range(start + ArnMinTokens, len(tokens) + 1):
                # the resource part of an arn never swallows the start of the next arn
                if end > start + ArnMinTokens and tokens[end - 1] == "arn":
                    break
                candidate = self.separator.join(tokens[start:end])
                if is_arn(candidate):
                    for rest in self._segment(tokens, end, remaining - 1):
                        yield [candidate] + rest
        if token:
            for rest in self._segment(tokens, start + 1, remaining - 1):
                yield [token] + rest


def create_resource_id(parts: List[str], separator: str = ResourceIdSeparator) -> str:
    return ResourceIdCodec(len(parts), separator).encode(*parts)


def parse_resource_id(identifier: str, arity: int, separator: str = ResourceIdSeparator) -> Tuple[str, ...]:
    return ResourceIdCodec(arity, separator).decode(identifier)
